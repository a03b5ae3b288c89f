"""HTTP route definitions for the account service."""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from ..domain.account import Account, Gender
from ..domain.contracts import ChangePasswordInput, RegisterAccountInput, UpdateProfileInput
from ..domain.errors import AccountErrorKind, Outcome
from ..domain.service import AccountLifecycleService
from ..metrics import record_outcome

router = APIRouter(prefix="/v1")

ERROR_STATUS: dict[AccountErrorKind, int] = {
    AccountErrorKind.IDENTIFIER_IN_USE: status.HTTP_409_CONFLICT,
    AccountErrorKind.EMAIL_IN_USE: status.HTTP_409_CONFLICT,
    AccountErrorKind.ACCOUNT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AccountErrorKind.HOBBY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AccountErrorKind.CREDENTIAL_MISMATCH: status.HTTP_401_UNAUTHORIZED,
    AccountErrorKind.PASSWORD_UNCHANGED: status.HTTP_400_BAD_REQUEST,
    AccountErrorKind.ALREADY_DELETED: status.HTTP_410_GONE,
}


class HobbyResponse(BaseModel):
    hobby_id: int
    name: str


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` aggregate without credentials."""

    account_id: str
    display_name: str
    email: EmailStr
    gender: Gender | None
    age: int | None
    hobbies: list[HobbyResponse]
    alarm_enabled: bool
    roles: list[str]

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            account_id=account.account_id,
            display_name=account.display_name,
            email=account.email,
            gender=account.gender,
            age=account.age,
            hobbies=[
                HobbyResponse(hobby_id=hobby.hobby_id, name=hobby.name)
                for hobby in sorted(account.hobbies, key=lambda h: h.hobby_id)
            ],
            alarm_enabled=account.alarm_enabled,
            roles=sorted(role.value for role in account.roles),
        )


class RegisterAccountRequest(BaseModel):
    """Payload accepted when registering an account."""

    account_id: str = Field(..., min_length=1, max_length=64)
    display_name: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)
    email: EmailStr
    gender: Gender | None = None
    age: int | None = Field(default=None, ge=0)
    hobby_ids: list[int] | None = None


class UpdateProfileRequest(BaseModel):
    display_name: str = Field(..., min_length=1, max_length=64)
    gender: Gender | None = None
    age: int | None = Field(default=None, ge=0)
    alarm_enabled: bool = True
    hobby_ids: list[int] | None = None


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=1)


def get_service(request: Request) -> AccountLifecycleService:
    """Resolve the `AccountLifecycleService` stored on the FastAPI application state."""
    service: AccountLifecycleService = request.app.state.account_service
    return service


def _unwrap(operation: str, outcome: Outcome):
    """Record the outcome and raise the HTTP error matching a refused operation."""
    record_outcome(operation, outcome)
    if outcome.error is not None:
        raise HTTPException(status_code=ERROR_STATUS[outcome.error], detail=outcome.error.value)
    return outcome.value


@router.post("/accounts", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def register_account(
    payload: RegisterAccountRequest,
    service: AccountLifecycleService = Depends(get_service),
) -> AccountResponse:
    """Register an account, reclaiming identifiers held by deleted accounts."""
    outcome = service.register(
        RegisterAccountInput(
            account_id=payload.account_id,
            display_name=payload.display_name,
            password=payload.password,
            email=payload.email,
            gender=payload.gender,
            age=payload.age,
            hobby_ids=payload.hobby_ids or [],
        )
    )
    return AccountResponse.from_domain(_unwrap("register_account", outcome))


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: str,
    service: AccountLifecycleService = Depends(get_service),
) -> AccountResponse:
    """Retrieve an active account."""
    return AccountResponse.from_domain(_unwrap("get_account", service.get_account(account_id)))


@router.put("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def update_profile(
    account_id: str,
    payload: UpdateProfileRequest,
    service: AccountLifecycleService = Depends(get_service),
) -> Response:
    """Overwrite the profile and hobby set of an active account."""
    outcome = service.update_profile(
        account_id,
        UpdateProfileInput(
            display_name=payload.display_name,
            gender=payload.gender,
            age=payload.age,
            alarm_enabled=payload.alarm_enabled,
            hobby_ids=payload.hobby_ids or [],
        ),
    )
    _unwrap("update_profile", outcome)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/accounts/{account_id}/password", status_code=status.HTTP_204_NO_CONTENT)
def change_password(
    account_id: str,
    payload: ChangePasswordRequest,
    service: AccountLifecycleService = Depends(get_service),
) -> Response:
    outcome = service.change_password(
        account_id,
        ChangePasswordInput(old_password=payload.old_password, new_password=payload.new_password),
    )
    _unwrap("change_password", outcome)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/accounts/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: str,
    payload: DeleteAccountRequest = Body(...),
    service: AccountLifecycleService = Depends(get_service),
) -> Response:
    """Soft-delete an account after confirming its password."""
    _unwrap("delete_account", service.delete_account(account_id, payload.password))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
