from __future__ import annotations

import pytest

from account_service.domain.account import Gender, Hobby, Role
from account_service.domain.contracts import ChangePasswordInput, RegisterAccountInput, UpdateProfileInput
from account_service.domain.errors import AccountErrorKind, DuplicateAccountError
from account_service.domain.service import AccountLifecycleService

from fakes import FIXED_NOW, FakeAccountStore, FakePasswordHasher


def _register(service, account_id="u1", email="a@x.com", password="pw1", hobby_ids=None, name="Alice"):
    return service.register(
        RegisterAccountInput(
            account_id=account_id,
            display_name=name,
            password=password,
            email=email,
            gender=Gender.FEMALE,
            age=30,
            hobby_ids=hobby_ids or [],
        )
    )


def _profile(hobby_ids, name="Alice B"):
    return UpdateProfileInput(display_name=name, gender=Gender.OTHER, age=31, alarm_enabled=False, hobby_ids=hobby_ids)


def test_register_creates_active_account_with_defaults(service, store):
    outcome = _register(service, hobby_ids=[1, 2, 2])

    assert outcome.ok
    account = outcome.value
    assert account.record_id is not None
    assert account.alarm_enabled is True
    assert account.roles == {Role.USER}
    assert account.deleted is False and account.deleted_at is None
    assert account.hobbies == {Hobby(1), Hobby(2)}
    assert account.password_hash == "fake$pw1"
    assert store.writes == [("insert", "u1")]


def test_register_rejects_active_identifier(service, store):
    assert _register(service).ok

    outcome = _register(service, email="other@x.com")

    assert outcome.error is AccountErrorKind.IDENTIFIER_IN_USE
    assert len(store.rows_for("u1")) == 1


def test_register_rejects_active_email(service):
    assert _register(service).ok

    outcome = _register(service, account_id="u2")

    assert outcome.error is AccountErrorKind.EMAIL_IN_USE


def test_register_with_unknown_hobby_creates_nothing(service, store):
    outcome = _register(service, hobby_ids=[1, 999])

    assert outcome.error is AccountErrorKind.HOBBY_NOT_FOUND
    assert store.rows == {}
    assert store.writes == []


def test_register_reuses_identifiers_of_deleted_account(service, store):
    assert _register(service).ok
    assert service.delete_account("u1", "pw1").ok

    outcome = _register(service, password="pw2", name="Alice2")

    assert outcome.ok
    rows = store.rows_for("u1")
    assert len(rows) == 1
    assert rows[0].display_name == "Alice2"
    assert rows[0].deleted is False
    assert store.find_deleted_by_account_id("u1") is None


def test_register_purges_two_unrelated_deleted_accounts(service, store):
    assert _register(service, account_id="u1", email="a@x.com").ok
    assert _register(service, account_id="u2", email="b@x.com").ok
    assert service.delete_account("u1", "pw1").ok
    assert service.delete_account("u2", "pw1").ok

    outcome = _register(service, account_id="u1", email="b@x.com")

    assert outcome.ok
    assert store.rows_for("u2") == []
    assert [row.email for row in store.rows_for("u1")] == ["b@x.com"]


def test_register_purge_is_kept_when_registration_fails(service, store):
    assert _register(service, account_id="old", email="a@x.com").ok
    assert service.delete_account("old", "pw1").ok
    assert _register(service, account_id="u1", email="z@x.com").ok

    outcome = _register(service, account_id="u1", email="a@x.com")

    assert outcome.error is AccountErrorKind.IDENTIFIER_IN_USE
    assert store.rows_for("old") == []


@pytest.mark.parametrize(
    "field, kind",
    [("account_id", AccountErrorKind.IDENTIFIER_IN_USE), ("email", AccountErrorKind.EMAIL_IN_USE)],
)
def test_register_maps_store_uniqueness_violation(catalog, hasher, field, kind):
    class RacingStore(FakeAccountStore):
        def insert(self, account):
            raise DuplicateAccountError(field)

    service = AccountLifecycleService(RacingStore(), catalog, hasher)

    assert _register(service).error is kind


def test_active_accounts_stay_unique(service, store):
    for account_id, email in [("u1", "a@x.com"), ("u2", "a@x.com"), ("u1", "b@x.com"), ("u3", "c@x.com")]:
        _register(service, account_id=account_id, email=email)
    service.delete_account("u3", "pw1")
    _register(service, account_id="u3", email="c@x.com")

    active = [row for row in store.rows.values() if not row.deleted]
    assert len({row.account_id for row in active}) == len(active)
    assert len({row.email for row in active}) == len(active)


def test_get_account_hides_deleted(service):
    assert _register(service).ok
    assert service.get_account("u1").value.email == "a@x.com"

    service.delete_account("u1", "pw1")

    assert service.get_account("u1").error is AccountErrorKind.ACCOUNT_NOT_FOUND
    assert service.get_account("nobody").error is AccountErrorKind.ACCOUNT_NOT_FOUND


def test_update_profile_replaces_hobbies(service, store):
    assert _register(service, hobby_ids=[1, 2]).ok

    outcome = service.update_profile("u1", _profile([3]))

    assert outcome.ok
    account = service.get_account("u1").value
    assert account.hobbies == {Hobby(3)}
    assert account.display_name == "Alice B"
    assert account.gender is Gender.OTHER
    assert account.age == 31
    assert account.alarm_enabled is False


def test_update_profile_with_empty_hobbies_clears_set(service):
    assert _register(service, hobby_ids=[1]).ok

    assert service.update_profile("u1", _profile([])).ok
    assert service.get_account("u1").value.hobbies == set()


def test_update_profile_with_unknown_hobby_changes_nothing(service, store):
    assert _register(service, hobby_ids=[1, 2]).ok
    writes_before = list(store.writes)

    outcome = service.update_profile("u1", _profile([3, 999]))

    assert outcome.error is AccountErrorKind.HOBBY_NOT_FOUND
    account = service.get_account("u1").value
    assert account.hobbies == {Hobby(1), Hobby(2)}
    assert account.display_name == "Alice"
    assert store.writes == writes_before


def test_update_profile_requires_active_account(service):
    assert service.update_profile("ghost", _profile([])).error is AccountErrorKind.ACCOUNT_NOT_FOUND


def test_change_password_rotates_hash(service, store):
    assert _register(service).ok

    outcome = service.change_password("u1", ChangePasswordInput(old_password="pw1", new_password="pw2"))

    assert outcome.ok
    assert store.find_active_by_account_id("u1").password_hash == "fake$pw2"


def test_change_password_rejects_wrong_old_password(service, store):
    assert _register(service).ok

    outcome = service.change_password("u1", ChangePasswordInput(old_password="nope", new_password="pw2"))

    assert outcome.error is AccountErrorKind.CREDENTIAL_MISMATCH
    assert store.find_active_by_account_id("u1").password_hash == "fake$pw1"


def test_change_password_rejects_same_password(service):
    assert _register(service).ok

    outcome = service.change_password("u1", ChangePasswordInput(old_password="pw1", new_password="pw1"))

    assert outcome.error is AccountErrorKind.PASSWORD_UNCHANGED


def test_change_password_rejects_new_password_matching_stored_hash(store, catalog):
    class CaseFoldingHasher(FakePasswordHasher):
        def hash(self, plaintext: str) -> str:
            return super().hash(plaintext.lower())

    service = AccountLifecycleService(store, catalog, CaseFoldingHasher())
    assert _register(service, password="secret").ok

    outcome = service.change_password("u1", ChangePasswordInput(old_password="secret", new_password="SECRET"))

    assert outcome.error is AccountErrorKind.PASSWORD_UNCHANGED


def test_change_password_requires_active_account(service):
    outcome = service.change_password("ghost", ChangePasswordInput(old_password="a", new_password="b"))

    assert outcome.error is AccountErrorKind.ACCOUNT_NOT_FOUND


def test_delete_account_soft_deletes(service, store):
    assert _register(service).ok

    assert service.delete_account("u1", "pw1").ok

    (row,) = store.rows_for("u1")
    assert row.deleted is True
    assert row.deleted_at == FIXED_NOW


def test_delete_account_rejects_wrong_password(service, store):
    assert _register(service).ok

    assert service.delete_account("u1", "wrong").error is AccountErrorKind.CREDENTIAL_MISMATCH
    assert store.rows_for("u1")[0].deleted is False


def test_second_delete_fails_without_writing(service, store):
    assert _register(service).ok
    assert service.delete_account("u1", "pw1").ok
    writes_before = list(store.writes)

    outcome = service.delete_account("u1", "pw1")

    assert outcome.error is AccountErrorKind.ALREADY_DELETED
    assert store.writes == writes_before


@pytest.mark.parametrize("account_id", ["ghost", ""])
def test_delete_unknown_account(service, account_id):
    assert service.delete_account(account_id, "pw1").error is AccountErrorKind.ACCOUNT_NOT_FOUND
