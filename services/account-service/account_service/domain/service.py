"""Account lifecycle service: registration, profile edits, password rotation, deletion."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable

from .account import DEFAULT_ROLES, Account, Hobby
from .contracts import ChangePasswordInput, RegisterAccountInput, UpdateProfileInput
from .errors import AccountErrorKind, DuplicateAccountError, Outcome
from .ports import AccountStore, HobbyCatalog, PasswordHasher

logger = logging.getLogger(__name__)

_DUPLICATE_KINDS = {
    "account_id": AccountErrorKind.IDENTIFIER_IN_USE,
    "email": AccountErrorKind.EMAIL_IN_USE,
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccountLifecycleService:
    """Account workflows enforcing identity uniqueness over an injected store."""

    def __init__(
        self,
        store: AccountStore,
        hobbies: HobbyCatalog,
        hasher: PasswordHasher,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Store the collaborators every lifecycle operation is built on."""
        self._store = store
        self._hobbies = hobbies
        self._hasher = hasher
        self._clock = clock

    # -- helpers ---------------------------------------------------------------

    def _load_active(self, account_id: str) -> Account | None:
        account = self._store.find_active_by_account_id(account_id)
        if account is None:
            logger.warning("account lookup failed for account_id=%s", account_id)
        return account

    def _resolve_hobbies(self, hobby_ids: Iterable[int] | None) -> set[Hobby] | None:
        """Resolve every distinct hobby id, or return ``None`` if any is unknown."""
        resolved: set[Hobby] = set()
        for hobby_id in dict.fromkeys(hobby_ids or ()):
            hobby = self._hobbies.resolve(hobby_id)
            if hobby is None:
                logger.warning("unknown hobby id %s", hobby_id)
                return None
            resolved.add(hobby)
        return resolved

    def _password_matches(self, account: Account, password: str) -> bool:
        if self._hasher.verify(password, account.password_hash):
            return True
        logger.warning("password mismatch for account_id=%s", account.account_id)
        return False

    def _purge_deleted(self, account_id: str, email: str) -> None:
        # Each lookup purges independently; the two may name different rows.
        deleted = self._store.find_deleted_by_account_id(account_id)
        if deleted is not None:
            self._store.hard_delete(deleted)
            logger.info("purged soft-deleted account with account_id=%s", deleted.account_id)

        deleted = self._store.find_deleted_by_email(email)
        if deleted is not None:
            self._store.hard_delete(deleted)
            logger.info("purged soft-deleted account holding email of account_id=%s", deleted.account_id)

    # -- operations ------------------------------------------------------------

    def register(self, payload: RegisterAccountInput) -> Outcome[Account]:
        """Create an account, reclaiming identifiers held by soft-deleted rows.

        The purge of soft-deleted rows sharing the ``account_id`` or ``email``
        happens first and is kept even when a later check refuses the
        registration.
        """
        self._purge_deleted(payload.account_id, payload.email)

        if self._store.find_active_by_account_id(payload.account_id) is not None:
            logger.warning("registration refused, account_id=%s in use", payload.account_id)
            return Outcome.failure(AccountErrorKind.IDENTIFIER_IN_USE)
        if self._store.find_active_by_email(payload.email) is not None:
            logger.warning("registration refused for account_id=%s, email in use", payload.account_id)
            return Outcome.failure(AccountErrorKind.EMAIL_IN_USE)

        hobbies = self._resolve_hobbies(payload.hobby_ids)
        if hobbies is None:
            return Outcome.failure(AccountErrorKind.HOBBY_NOT_FOUND)

        account = Account(
            account_id=payload.account_id,
            display_name=payload.display_name,
            password_hash=self._hasher.hash(payload.password),
            email=payload.email,
            gender=payload.gender,
            age=payload.age,
            hobbies=hobbies,
            alarm_enabled=True,
            roles=set(DEFAULT_ROLES),
        )
        try:
            stored = self._store.insert(account)
        except DuplicateAccountError as exc:
            logger.warning("registration for account_id=%s lost uniqueness race on %s", payload.account_id, exc.field)
            return Outcome.failure(_DUPLICATE_KINDS[exc.field])

        logger.info("registered account_id=%s", stored.account_id)
        return Outcome.success(stored)

    def get_account(self, account_id: str) -> Outcome[Account]:
        """Return the active account for ``account_id``."""
        account = self._load_active(account_id)
        if account is None:
            return Outcome.failure(AccountErrorKind.ACCOUNT_NOT_FOUND)
        return Outcome.success(account)

    def update_profile(self, account_id: str, payload: UpdateProfileInput) -> Outcome[None]:
        """Overwrite profile attributes and replace the hobby set wholesale."""
        account = self._load_active(account_id)
        if account is None:
            return Outcome.failure(AccountErrorKind.ACCOUNT_NOT_FOUND)

        hobbies = self._resolve_hobbies(payload.hobby_ids)
        if hobbies is None:
            return Outcome.failure(AccountErrorKind.HOBBY_NOT_FOUND)

        account.display_name = payload.display_name
        account.gender = payload.gender
        account.age = payload.age
        account.alarm_enabled = payload.alarm_enabled
        account.hobbies = hobbies
        self._store.update(account)
        logger.info("updated profile of account_id=%s (%d hobbies)", account_id, len(hobbies))
        return Outcome.success()

    def change_password(self, account_id: str, payload: ChangePasswordInput) -> Outcome[None]:
        """Rotate the password after verifying the current one.

        A new password that verifies against the stored hash is refused as
        unchanged, whether or not it equals ``old_password`` literally.
        """
        account = self._load_active(account_id)
        if account is None:
            return Outcome.failure(AccountErrorKind.ACCOUNT_NOT_FOUND)
        if not self._password_matches(account, payload.old_password):
            return Outcome.failure(AccountErrorKind.CREDENTIAL_MISMATCH)
        if self._hasher.verify(payload.new_password, account.password_hash):
            logger.warning("new password equals current password for account_id=%s", account_id)
            return Outcome.failure(AccountErrorKind.PASSWORD_UNCHANGED)

        account.password_hash = self._hasher.hash(payload.new_password)
        self._store.update(account)
        logger.info("password changed for account_id=%s", account_id)
        return Outcome.success()

    def delete_account(self, account_id: str, password: str) -> Outcome[None]:
        """Soft-delete the account after verifying ``password``."""
        account = self._store.find_active_by_account_id(account_id)
        if account is None:
            account = self._store.find_deleted_by_account_id(account_id)
        if account is None:
            logger.warning("account lookup failed for account_id=%s", account_id)
            return Outcome.failure(AccountErrorKind.ACCOUNT_NOT_FOUND)
        if not self._password_matches(account, password):
            return Outcome.failure(AccountErrorKind.CREDENTIAL_MISMATCH)
        if account.deleted:
            logger.warning("account_id=%s is already deleted", account_id)
            return Outcome.failure(AccountErrorKind.ALREADY_DELETED)

        account.mark_deleted(self._clock())
        self._store.update(account)
        logger.info("soft-deleted account_id=%s", account_id)
        return Outcome.success()
