"""Create-if-absent registration of new accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Optional, TypeVar

import anyio

from .config import RegistryConfig
from .database import AccountStore, Lookup, LookupStatus
from .errors import MESSAGES, ErrorKind, StoreConflict, StoreError, StoreIOError, UsernameRejected
from .models import Account, Role
from .validation import validate_username

logger = logging.getLogger("account_registry.registration")

T = TypeVar("T")


class RegistrationState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    CHECKED = "checked"
    INSERTED = "inserted"
    REJECTED_DUPLICATE = "rejected_duplicate"
    REJECTED_INVALID = "rejected_invalid"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        RegistrationState.INSERTED,
        RegistrationState.REJECTED_DUPLICATE,
        RegistrationState.REJECTED_INVALID,
        RegistrationState.FAILED,
    }
)


@dataclass(frozen=True)
class RegistrationOutcome:
    """Terminal result of a single :meth:`RegistrationService.register` call."""

    state: RegistrationState
    username: Optional[str] = None
    account: Optional[Account] = None
    location: Optional[str] = None
    error: Optional[ErrorKind] = None

    @property
    def message(self) -> str:
        if self.error is None:
            return "Account created."
        return MESSAGES[self.error]

    @classmethod
    def rejected(cls, kind: ErrorKind, username: Optional[str] = None) -> "RegistrationOutcome":
        return cls(RegistrationState.REJECTED_INVALID, username=username, error=kind)

    @classmethod
    def duplicate(cls, username: str) -> "RegistrationOutcome":
        return cls(RegistrationState.REJECTED_DUPLICATE, username=username, error=ErrorKind.DUPLICATE)

    @classmethod
    def failed(cls, username: Optional[str]) -> "RegistrationOutcome":
        return cls(RegistrationState.FAILED, username=username, error=ErrorKind.INTERNAL)


async def run_store_call(func: Callable[[], T], *, timeout: float) -> T:
    """Run a blocking store call in a worker thread, bounded by ``timeout`` seconds.

    A call that overruns the deadline raises :class:`StoreIOError`. It is not
    retried, and the worker thread is left to finish on its own.
    """

    try:
        with anyio.fail_after(timeout):
            return await anyio.to_thread.run_sync(func, abandon_on_cancel=True)
    except TimeoutError as exc:
        raise StoreIOError(f"Store call exceeded {timeout:.2f}s deadline") from exc


class RegistrationService:
    """Validate, check for an existing account, then insert.

    The lookup is advisory: two concurrent requests for the same name can both
    see no match. The store's primary key decides which insert lands and the
    loser is reported as a duplicate.
    """

    def __init__(self, store: AccountStore, config: RegistryConfig) -> None:
        self._store = store
        self._config = config

    async def register(self, raw: object) -> RegistrationOutcome:
        try:
            username = validate_username(raw, policy=self._config.whitespace_policy)
        except UsernameRejected as exc:
            logger.info("Rejected registration payload (%s)", exc.kind.value)
            return RegistrationOutcome.rejected(exc.kind)
        state = RegistrationState.VALIDATED

        try:
            lookup: Lookup = await run_store_call(
                partial(self._store.find_by_username, username),
                timeout=self._config.store_timeout,
            )
        except StoreIOError as exc:
            lookup = Lookup.failure(exc)

        if lookup.status is LookupStatus.FOUND:
            logger.info("Registration for %s rejected: account already exists", username)
            return RegistrationOutcome.duplicate(username)
        if lookup.status is LookupStatus.STORE_FAILURE:
            logger.error("Duplicate check for %s failed in state %s: %s", username, state.value, lookup.error)
            return RegistrationOutcome.failed(username)
        state = RegistrationState.CHECKED

        account = Account.new(username, role=Role.USER)
        try:
            await run_store_call(partial(self._store.insert, account), timeout=self._config.store_timeout)
        except StoreConflict:
            logger.info("Registration for %s lost an insert race; reporting duplicate", username)
            return RegistrationOutcome.duplicate(username)
        except StoreError as exc:
            logger.error("Insert for %s failed in state %s: %s", username, state.value, exc)
            return RegistrationOutcome.failed(username)

        location = self._config.account_location(username)
        logger.info("Registered account %s", username)
        return RegistrationOutcome(
            RegistrationState.INSERTED,
            username=username,
            account=account,
            location=location,
        )


__all__ = [
    "RegistrationOutcome",
    "RegistrationService",
    "RegistrationState",
    "run_store_call",
]
