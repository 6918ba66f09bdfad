"""Configuration management for the account registry service."""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .validation import WhitespacePolicy

DEFAULT_PUBLIC_URL = "http://localhost:3000"
DEFAULT_PAGE_SIZE = 32
DEFAULT_STORE_TIMEOUT = 5.0


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the registry database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "registry.sqlite3").resolve(strict=False)


def _env_flag(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _config_flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _env_flag(value)
    raise ValueError(f"expected a boolean, got {value!r}")


@dataclass(frozen=True)
class RegistryConfig:
    """Settings injected into the store, the services and the HTTP app."""

    database_path: Path
    public_url: str = DEFAULT_PUBLIC_URL
    page_size: int = DEFAULT_PAGE_SIZE
    store_timeout: float = DEFAULT_STORE_TIMEOUT
    trim_whitespace: bool = False

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be a positive integer")
        if self.store_timeout <= 0:
            raise ValueError("store_timeout must be greater than zero")
        object.__setattr__(self, "public_url", self.public_url.rstrip("/"))

    @property
    def whitespace_policy(self) -> WhitespacePolicy:
        return WhitespacePolicy.TRIM if self.trim_whitespace else WhitespacePolicy.REJECT

    def account_location(self, username: str) -> str:
        return f"{self.public_url}/user/{username}"

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "RegistryConfig":
        """Create a :class:`RegistryConfig` from raw dictionary data."""

        unknown = set(data) - {"database_path", "public_url", "page_size", "store_timeout", "trim_whitespace"}
        if unknown:
            raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        if raw_path:
            candidate = Path(str(raw_path)).expanduser()
            if not candidate.is_absolute() and base_path is not None:
                candidate = base_path / candidate
            database_path = candidate.resolve(strict=False)
        else:
            database_path = resolve_database_path(None)

        try:
            return RegistryConfig(
                database_path=database_path,
                public_url=str(data.get("public_url", DEFAULT_PUBLIC_URL)),
                page_size=int(data.get("page_size", DEFAULT_PAGE_SIZE)),  # type: ignore[arg-type]
                store_timeout=float(data.get("store_timeout", DEFAULT_STORE_TIMEOUT)),  # type: ignore[arg-type]
                trim_whitespace=_config_flag(data.get("trim_whitespace", False)),
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid registry configuration: {exc}") from exc


def _apply_environment(config: RegistryConfig, environ: Mapping[str, str]) -> RegistryConfig:
    overrides: Dict[str, object] = {}
    if environ.get("REGISTRY_DB_PATH"):
        overrides["database_path"] = resolve_database_path(environ["REGISTRY_DB_PATH"])
    if environ.get("REGISTRY_PUBLIC_URL"):
        overrides["public_url"] = environ["REGISTRY_PUBLIC_URL"].strip()
    try:
        if environ.get("REGISTRY_PAGE_SIZE"):
            overrides["page_size"] = int(environ["REGISTRY_PAGE_SIZE"])
        if environ.get("REGISTRY_STORE_TIMEOUT"):
            overrides["store_timeout"] = float(environ["REGISTRY_STORE_TIMEOUT"])
    except ValueError as exc:
        raise ValueError(f"Invalid registry environment setting: {exc}") from exc
    if "REGISTRY_TRIM_WHITESPACE" in environ:
        overrides["trim_whitespace"] = _env_flag(environ["REGISTRY_TRIM_WHITESPACE"])
    if not overrides:
        return config
    return replace(config, **overrides)


def load_config(
    config_path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> RegistryConfig:
    """Load settings from an optional YAML file, then apply ``REGISTRY_*`` overrides."""

    env = os.environ if environ is None else environ
    if config_path is None and env.get("REGISTRY_CONFIG"):
        config_path = Path(env["REGISTRY_CONFIG"]).expanduser()

    if config_path is not None:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")
        config = RegistryConfig.from_dict(raw, base_path=config_path.parent)
    else:
        config = RegistryConfig(database_path=resolve_database_path(None))

    return _apply_environment(config, env)


__all__ = ["RegistryConfig", "load_config", "resolve_database_path"]
