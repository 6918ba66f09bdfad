from pathlib import Path

import pytest

from account_registry.config import RegistryConfig
from account_registry.database import AccountStore
from account_registry.errors import StoreIOError
from account_registry.models import Account
from main import _list_accounts, _parse_args, main


class UncountableStore(AccountStore):
    def count(self) -> int:
        raise StoreIOError("database is locked")


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_config_option_precedes_implicit_serve() -> None:
    args = _parse_args(["--config", "registry.yaml", "--port", "8080"])
    assert args.command == "serve"
    assert args.config == Path("registry.yaml")
    assert args.port == 8080


def test_register_subcommand_parses_username() -> None:
    args = _parse_args(["register", "alice12"])
    assert args.command == "register"
    assert args.username == "alice12"


def test_register_and_list_accounts(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    monkeypatch.setenv("REGISTRY_DB_PATH", str(tmp_path / "cli.sqlite3"))
    monkeypatch.delenv("REGISTRY_CONFIG", raising=False)

    assert main(["register", "zeta_user"]) == 0
    assert main(["register", "alpha_user"]) == 0
    assert main(["register", "alpha_user"]) == 1
    assert main(["register", "no"]) == 1

    capsys.readouterr()
    assert main(["list-accounts"]) == 0
    output = capsys.readouterr().out
    assert "Showing 2 of 2 account(s)" in output
    assert output.index("alpha_user") < output.index("zeta_user")


def test_init_db_creates_database(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_path = tmp_path / "nested" / "init.sqlite3"
    monkeypatch.setenv("REGISTRY_DB_PATH", str(db_path))
    monkeypatch.delenv("REGISTRY_CONFIG", raising=False)

    assert main(["init-db"]) == 0
    assert db_path.exists()


def test_list_accounts_reports_count_failure(tmp_path: Path, capsys) -> None:
    config = RegistryConfig(database_path=tmp_path / "count.sqlite3")
    store = UncountableStore(config.database_path)
    store.initialize()
    store.insert(Account.new("alice12"))

    assert _list_accounts(config, store) == 1
    assert "Failed to count accounts: database is locked" in capsys.readouterr().err
