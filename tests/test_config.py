from __future__ import annotations

from pathlib import Path

import pytest

from account_registry.config import RegistryConfig, load_config, resolve_database_path
from account_registry.validation import WhitespacePolicy


def test_defaults_without_file_or_environment() -> None:
    config = load_config(environ={})

    assert config.database_path == resolve_database_path(None)
    assert config.database_path.name == "registry.sqlite3"
    assert config.public_url == "http://localhost:3000"
    assert config.page_size == 32
    assert config.whitespace_policy is WhitespacePolicy.REJECT


def test_yaml_file_is_loaded_relative_to_its_directory(tmp_path: Path) -> None:
    config_file = tmp_path / "registry.yaml"
    config_file.write_text(
        "database_path: data/accounts.sqlite3\n"
        "public_url: https://accounts.example.com/\n"
        "page_size: 10\n"
        "store_timeout: 2.5\n"
        "trim_whitespace: true\n",
        encoding="utf-8",
    )

    config = load_config(config_file, environ={})

    assert config.database_path == (tmp_path / "data" / "accounts.sqlite3").resolve()
    assert config.public_url == "https://accounts.example.com"
    assert config.page_size == 10
    assert config.store_timeout == 2.5
    assert config.whitespace_policy is WhitespacePolicy.TRIM
    assert config.account_location("alice12") == "https://accounts.example.com/user/alice12"


def test_environment_overrides_file(tmp_path: Path) -> None:
    config_file = tmp_path / "registry.yaml"
    config_file.write_text("page_size: 10\n", encoding="utf-8")

    config = load_config(
        environ={
            "REGISTRY_CONFIG": str(config_file),
            "REGISTRY_DB_PATH": str(tmp_path / "env.sqlite3"),
            "REGISTRY_PAGE_SIZE": "5",
            "REGISTRY_TRIM_WHITESPACE": "yes",
        }
    )

    assert config.database_path == (tmp_path / "env.sqlite3").resolve()
    assert config.page_size == 5
    assert config.trim_whitespace is True


def test_invalid_environment_values_raise() -> None:
    with pytest.raises(ValueError):
        load_config(environ={"REGISTRY_PAGE_SIZE": "lots"})
    with pytest.raises(ValueError):
        load_config(environ={"REGISTRY_PAGE_SIZE": "0"})


def test_unknown_yaml_fields_raise(tmp_path: Path) -> None:
    config_file = tmp_path / "registry.yaml"
    config_file.write_text("page_sise: 10\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_file, environ={})


def test_non_positive_timeout_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        RegistryConfig(database_path=tmp_path / "db.sqlite3", store_timeout=0)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [('"false"', False), ('"no"', False), ('"yes"', True), ("off", False), ("on", True), ("false", False)],
)
def test_trim_whitespace_strings_are_parsed_as_flags(tmp_path: Path, raw: str, expected: bool) -> None:
    config_file = tmp_path / "registry.yaml"
    config_file.write_text(f"trim_whitespace: {raw}\n", encoding="utf-8")

    assert load_config(config_file, environ={}).trim_whitespace is expected


def test_trim_whitespace_rejects_non_flag_values(tmp_path: Path) -> None:
    config_file = tmp_path / "registry.yaml"
    config_file.write_text("trim_whitespace: [1]\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_file, environ={})
