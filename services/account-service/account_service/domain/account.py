from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class Role(str, Enum):
    USER = "ROLE_USER"
    ADMIN = "ROLE_ADMIN"


DEFAULT_ROLES: frozenset[Role] = frozenset({Role.USER})


@dataclass(frozen=True)
class Hobby:
    """Catalog entry referenced by accounts; identity is the hobby id alone."""

    hobby_id: int
    name: str = field(default="", compare=False)


@dataclass(slots=True)
class Account:
    """Aggregate root for a member's identity, credentials and hobby set."""

    account_id: str
    display_name: str
    password_hash: str
    email: str
    gender: Gender | None
    age: int | None
    hobbies: set[Hobby] = field(default_factory=set)
    alarm_enabled: bool = True
    roles: set[Role] = field(default_factory=lambda: set(DEFAULT_ROLES))
    deleted: bool = False
    deleted_at: datetime | None = None
    record_id: int | None = None

    def mark_deleted(self, now: datetime) -> None:
        """Soft-delete the account, keeping ``deleted`` and ``deleted_at`` in step."""
        self.deleted = True
        self.deleted_at = now
