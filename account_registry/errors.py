"""Error taxonomy shared by the registry services and the HTTP layer."""
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Client-facing classification of a failed request."""

    MALFORMED_PAYLOAD = "malformed_payload"
    INVALID_FORMAT = "invalid_format"
    DUPLICATE = "duplicate"
    INTERNAL = "internal"


MESSAGES = {
    ErrorKind.MALFORMED_PAYLOAD: "Username must be provided as a string.",
    ErrorKind.INVALID_FORMAT: (
        "Username must be 5-32 characters of letters, digits or underscores "
        "and include at least one letter."
    ),
    ErrorKind.DUPLICATE: "User already exists.",
    ErrorKind.INTERNAL: "Internal server error. Contact site administrator for assistance.",
}


class RegistryError(Exception):
    """Raised by the services when a request cannot be completed."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None) -> None:
        self.kind = kind
        self.message = message or MESSAGES[kind]
        super().__init__(self.message)


class UsernameRejected(RegistryError):
    """The candidate username failed validation."""


class StoreError(Exception):
    """Base class for failures raised by the account store."""


class StoreConflict(StoreError):
    """A row with the same username already exists."""


class StoreIOError(StoreError):
    """Any other storage failure, including deadlines."""


__all__ = [
    "ErrorKind",
    "MESSAGES",
    "RegistryError",
    "StoreConflict",
    "StoreError",
    "StoreIOError",
    "UsernameRejected",
]
