"""Domain models for the account registry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Dict, Optional


class Role(IntEnum):
    """Numeric role tag persisted with each account.

    ``ADMIN`` and ``MOD`` are reserved; public registration only creates ``USER``.
    """

    ADMIN = 0
    MOD = 1
    USER = 2


@dataclass(frozen=True)
class Account:
    """Represents an account stored in the registry database."""

    username: str
    created_at: datetime
    last_seen_at: datetime
    role: Role = Role.USER

    def __post_init__(self) -> None:
        if self.last_seen_at < self.created_at:
            raise ValueError("last_seen_at must not precede created_at")
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @classmethod
    def new(cls, username: str, *, role: Role = Role.USER, now: Optional[datetime] = None) -> "Account":
        timestamp = now or datetime.now(timezone.utc)
        return cls(username=username, created_at=timestamp, last_seen_at=timestamp, role=role)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "last_seen_at": self.last_seen_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "role": int(self.role),
        }


__all__ = ["Account", "Role"]
