"""Username validation rules applied before any storage access."""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ErrorKind, UsernameRejected

MIN_LENGTH = 5
MAX_LENGTH = 32

_ALLOWED = frozenset(string.ascii_letters + string.digits + "_")
_LETTERS = frozenset(string.ascii_letters)


class WhitespacePolicy(str, Enum):
    """How surrounding whitespace in a submitted username is treated."""

    REJECT = "reject"
    TRIM = "trim"


@dataclass(frozen=True)
class ValidationResult:
    username: Optional[str] = None
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def validate_username(raw: object, *, policy: WhitespacePolicy = WhitespacePolicy.REJECT) -> str:
    """Return the validated username or raise :class:`UsernameRejected`.

    Under ``WhitespacePolicy.REJECT`` the raw value is checked as submitted, so
    leading or trailing whitespace fails the character rule. ``TRIM`` strips it
    first.
    """

    if not isinstance(raw, str):
        raise UsernameRejected(ErrorKind.MALFORMED_PAYLOAD)

    candidate = raw.strip() if policy is WhitespacePolicy.TRIM else raw

    if not MIN_LENGTH <= len(candidate) <= MAX_LENGTH:
        raise UsernameRejected(ErrorKind.INVALID_FORMAT)
    if any(char not in _ALLOWED for char in candidate):
        raise UsernameRejected(ErrorKind.INVALID_FORMAT)
    if not any(char in _LETTERS for char in candidate):
        raise UsernameRejected(ErrorKind.INVALID_FORMAT)
    return candidate


def check_username(raw: object, *, policy: WhitespacePolicy = WhitespacePolicy.REJECT) -> ValidationResult:
    """Non-raising variant of :func:`validate_username`."""

    try:
        return ValidationResult(username=validate_username(raw, policy=policy))
    except UsernameRejected as exc:
        return ValidationResult(error=exc.kind)


__all__ = [
    "MAX_LENGTH",
    "MIN_LENGTH",
    "ValidationResult",
    "WhitespacePolicy",
    "check_username",
    "validate_username",
]
