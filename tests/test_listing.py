from __future__ import annotations

from pathlib import Path
from typing import List

import anyio
import pytest

from account_registry.config import RegistryConfig
from account_registry.database import AccountStore
from account_registry.errors import ErrorKind, RegistryError, StoreIOError
from account_registry.listing import ListingService
from account_registry.models import Account


class BrokenListStore(AccountStore):
    def list_page(self, limit: int) -> List[Account]:
        raise StoreIOError("unable to open database file")


def _listing(tmp_path: Path, *, page_size: int = 32, store_cls=AccountStore) -> tuple[ListingService, AccountStore]:
    config = RegistryConfig(database_path=tmp_path / "registry.sqlite3", page_size=page_size)
    store = store_cls(config.database_path)
    store.initialize()
    return ListingService(store, config), store


def test_listing_is_ordered_by_username(tmp_path: Path) -> None:
    listing, store = _listing(tmp_path)
    for name in ("zeta1", "alpha1", "mid1"):
        store.insert(Account.new(name))

    accounts = anyio.run(listing.list)

    assert [account.username for account in accounts] == ["alpha1", "mid1", "zeta1"]


def test_listing_empty_store_returns_empty_list(tmp_path: Path) -> None:
    listing, _ = _listing(tmp_path)
    assert anyio.run(listing.list) == []


def test_listing_is_capped_at_page_size(tmp_path: Path) -> None:
    listing, store = _listing(tmp_path, page_size=3)
    for index in range(5):
        store.insert(Account.new(f"user_{index:02d}"))

    accounts = anyio.run(listing.list)

    assert listing.page_size == 3
    assert [account.username for account in accounts] == ["user_00", "user_01", "user_02"]


def test_listing_failure_raises_internal_error(tmp_path: Path) -> None:
    listing, _ = _listing(tmp_path, store_cls=BrokenListStore)

    with pytest.raises(RegistryError) as excinfo:
        anyio.run(listing.list)

    assert excinfo.value.kind is ErrorKind.INTERNAL
    assert "database file" not in excinfo.value.message
