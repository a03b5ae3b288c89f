from __future__ import annotations

import pytest

from account_service.domain.service import AccountLifecycleService

from fakes import FIXED_NOW, FakeAccountStore, FakeHobbyCatalog, FakePasswordHasher


@pytest.fixture
def store() -> FakeAccountStore:
    return FakeAccountStore()


@pytest.fixture
def catalog() -> FakeHobbyCatalog:
    return FakeHobbyCatalog({1: "climbing", 2: "chess", 3: "baking"})


@pytest.fixture
def hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def service(store, catalog, hasher) -> AccountLifecycleService:
    return AccountLifecycleService(store, catalog, hasher, clock=lambda: FIXED_NOW)
