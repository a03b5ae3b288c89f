"""Collaborator interfaces consumed by the account lifecycle service."""

from __future__ import annotations

from typing import Protocol

from .account import Account, Hobby


class AccountStore(Protocol):
    """Durable account storage distinguishing active and soft-deleted rows.

    ``insert`` and ``update`` are atomic per call and raise
    :class:`~account_service.domain.errors.DuplicateAccountError` when the write
    would leave two active accounts sharing an ``account_id`` or ``email``.
    """

    def find_active_by_account_id(self, account_id: str) -> Account | None: ...

    def find_active_by_email(self, email: str) -> Account | None: ...

    def find_deleted_by_account_id(self, account_id: str) -> Account | None: ...

    def find_deleted_by_email(self, email: str) -> Account | None: ...

    def insert(self, account: Account) -> Account: ...

    def update(self, account: Account) -> None: ...

    def hard_delete(self, account: Account) -> None: ...


class HobbyCatalog(Protocol):
    def resolve(self, hobby_id: int) -> Hobby | None: ...


class PasswordHasher(Protocol):
    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, hashed: str) -> bool: ...
