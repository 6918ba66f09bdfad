"""Bounded, ordered listing of registered accounts."""

from __future__ import annotations

import logging
from functools import partial
from typing import List

from .config import RegistryConfig
from .database import AccountStore
from .errors import ErrorKind, RegistryError, StoreError
from .models import Account
from .registration import run_store_call

logger = logging.getLogger("account_registry.listing")


class ListingService:
    """Return the first page of accounts ordered by username."""

    def __init__(self, store: AccountStore, config: RegistryConfig) -> None:
        self._store = store
        self._config = config

    @property
    def page_size(self) -> int:
        return self._config.page_size

    async def list(self) -> List[Account]:
        try:
            return await run_store_call(
                partial(self._store.list_page, self._config.page_size),
                timeout=self._config.store_timeout,
            )
        except StoreError as exc:
            logger.error("Listing accounts failed: %s", exc)
            raise RegistryError(ErrorKind.INTERNAL) from exc


__all__ = ["ListingService"]
