"""SQLite-backed persistence for registered accounts.

Reads and writes go through separate connections: read connections are put in
``query_only`` mode, writes use a read-write connection and are serialized. The table's
primary key is what guarantees one account per username.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .errors import StoreConflict, StoreIOError
from .models import Account, Role

logger = logging.getLogger("account_registry.database")


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _serialize_datetime(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


_UNIQUENESS_ERRORS = {"SQLITE_CONSTRAINT_PRIMARYKEY", "SQLITE_CONSTRAINT_UNIQUE"}


def _is_uniqueness_violation(exc: sqlite3.IntegrityError) -> bool:
    errorname = getattr(exc, "sqlite_errorname", None)
    if errorname is not None:
        return errorname in _UNIQUENESS_ERRORS
    return str(exc).startswith("UNIQUE constraint failed")


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    STORE_FAILURE = "store_failure"


@dataclass(frozen=True)
class Lookup:
    """Outcome of a username lookup on the read path."""

    status: LookupStatus
    account: Optional[Account] = None
    error: Optional[BaseException] = None

    @classmethod
    def found(cls, account: Account) -> "Lookup":
        return cls(LookupStatus.FOUND, account=account)

    @classmethod
    def not_found(cls) -> "Lookup":
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def failure(cls, error: BaseException) -> "Lookup":
        return cls(LookupStatus.STORE_FAILURE, error=error)


class AccountStore:
    """Wrapper around SQLite exposing a read path and a write path."""

    def __init__(self, path: Path, *, busy_timeout: float = 5.0) -> None:
        _ensure_directory(path)
        self._path = path
        self._busy_timeout = busy_timeout
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _connect_reader(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # rejects INSERT/UPDATE/DELETE on this connection
        conn.execute("PRAGMA query_only = ON")
        return conn

    def _connect_writer(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=self._busy_timeout, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the accounts table if it does not already exist."""

        conn = self._connect_writer()
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            with conn:
                conn.executescript(
                    """
                    CREATE TABLE IF NOT EXISTS accounts (
                        username TEXT PRIMARY KEY NOT NULL,
                        created_at TEXT NOT NULL,
                        last_seen_at TEXT NOT NULL,
                        role INTEGER NOT NULL CHECK (role IN (0, 1, 2)),
                        CHECK (created_at <= last_seen_at)
                    );
                    """
                )
        finally:
            conn.close()
        logger.debug("Account store initialised at %s", self._path)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    def find_by_username(self, username: str) -> Lookup:
        try:
            conn = self._connect_reader()
            try:
                row = conn.execute(
                    "SELECT * FROM accounts WHERE username = ? LIMIT 1",
                    (username,),
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            logger.error("Lookup for %r failed: %s", username, exc)
            return Lookup.failure(StoreIOError(str(exc)))

        if row is None:
            return Lookup.not_found()
        return Lookup.found(self._row_to_account(row))

    def list_page(self, limit: int) -> List[Account]:
        """Return at most ``limit`` accounts ordered by username."""

        try:
            conn = self._connect_reader()
            try:
                rows = conn.execute(
                    "SELECT * FROM accounts ORDER BY username LIMIT ?",
                    (limit,),
                ).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreIOError(str(exc)) from exc
        return [self._row_to_account(row) for row in rows]

    def count(self) -> int:
        try:
            conn = self._connect_reader()
            try:
                row = conn.execute("SELECT COUNT(*) AS total FROM accounts").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise StoreIOError(str(exc)) from exc
        return int(row["total"])

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------
    def insert(self, account: Account) -> None:
        """Persist ``account``; raise :class:`StoreConflict` if the name is taken."""

        with self._write_lock:
            try:
                conn = self._connect_writer()
                try:
                    with conn:
                        cursor = conn.execute(
                            """
                            INSERT INTO accounts (username, created_at, last_seen_at, role)
                            VALUES (?, ?, ?, ?)
                            """,
                            (
                                account.username,
                                _serialize_datetime(account.created_at),
                                _serialize_datetime(account.last_seen_at),
                                int(account.role),
                            ),
                        )
                finally:
                    conn.close()
            except sqlite3.IntegrityError as exc:
                if not _is_uniqueness_violation(exc):
                    raise StoreIOError(str(exc)) from exc
                raise StoreConflict(f"Account {account.username!r} already exists") from exc
            except sqlite3.Error as exc:
                raise StoreIOError(str(exc)) from exc

        if cursor.rowcount != 1:
            raise StoreIOError(f"Unable to create account {account.username!r}")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            username=str(row["username"]),
            created_at=_parse_datetime(str(row["created_at"])),
            last_seen_at=_parse_datetime(str(row["last_seen_at"])),
            role=Role(int(row["role"])),
        )


__all__ = ["AccountStore", "Lookup", "LookupStatus"]
