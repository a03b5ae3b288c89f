"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, field

from .account import Gender


@dataclass(slots=True)
class RegisterAccountInput:
    """Validated inputs required to register a new account."""

    account_id: str
    display_name: str
    password: str
    email: str
    gender: Gender | None = None
    age: int | None = None
    hobby_ids: list[int] = field(default_factory=list)


@dataclass(slots=True)
class UpdateProfileInput:
    """Replacement values for the mutable profile attributes of an account."""

    display_name: str
    gender: Gender | None = None
    age: int | None = None
    alarm_enabled: bool = True
    hobby_ids: list[int] = field(default_factory=list)


@dataclass(slots=True)
class ChangePasswordInput:
    old_password: str
    new_password: str
