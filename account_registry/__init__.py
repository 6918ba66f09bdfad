"""Core utilities for the account registry service."""

from __future__ import annotations

from typing import Any

from .config import RegistryConfig, load_config, resolve_database_path
from .database import AccountStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the registry HTTP application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "AccountStore",
    "RegistryConfig",
    "create_app",
    "load_config",
    "resolve_database_path",
]
