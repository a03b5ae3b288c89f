"""Outcome and error types for account lifecycle operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class AccountErrorKind(str, Enum):
    """Expected, caller-recoverable reasons an account operation is refused."""

    IDENTIFIER_IN_USE = "identifier_in_use"
    EMAIL_IN_USE = "email_in_use"
    ACCOUNT_NOT_FOUND = "account_not_found"
    HOBBY_NOT_FOUND = "hobby_not_found"
    CREDENTIAL_MISMATCH = "credential_mismatch"
    PASSWORD_UNCHANGED = "password_unchanged"
    ALREADY_DELETED = "already_deleted"


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of a lifecycle operation: either a value or an error kind."""

    value: T | None = None
    error: AccountErrorKind | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AccountErrorKind) -> "Outcome[T]":
        return cls(error=error)


class InfrastructureError(Exception):
    """Raised when a collaborator (store, catalog, hasher) fails unexpectedly."""


class DuplicateAccountError(Exception):
    """Raised by an account store when a write violates active-row uniqueness.

    ``field`` is ``"account_id"`` or ``"email"``.
    """

    def __init__(self, field: str) -> None:
        super().__init__(f"active account with duplicate {field}")
        self.field = field
