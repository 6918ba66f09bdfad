"""Command-line interface for the account registry service."""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

import anyio

from account_registry.config import RegistryConfig, load_config
from account_registry.database import AccountStore
from account_registry.errors import RegistryError, StoreError
from account_registry.listing import ListingService
from account_registry.registration import RegistrationService, RegistrationState

logger = logging.getLogger("account_registry.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Account registry utilities")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (default: REGISTRY_CONFIG or built-in defaults)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the registry database")
    subparsers.add_parser("list-accounts", help="Print the first page of registered accounts")

    register_parser = subparsers.add_parser("register", help="Register a new account")
    register_parser.add_argument("username", help="Username to register")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP registry service")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the HTTP API (default: 3000)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list-accounts", "register"}

    if not args_list:
        args_list = ["serve"]
    elif not any(arg in known_commands for arg in args_list):
        if any(flag in args_list for flag in ("-h", "--help")):
            return parser.parse_args(args_list)
        global_args, rest = _split_global_args(args_list)
        args_list = [*global_args, "serve", *rest]

    return parser.parse_args(args_list)


def _split_global_args(args_list: list[str]) -> tuple[list[str], list[str]]:
    if len(args_list) >= 2 and args_list[0] == "--config":
        return args_list[:2], args_list[2:]
    if args_list and args_list[0].startswith("--config="):
        return args_list[:1], args_list[1:]
    return [], args_list


def _initialise_store(config: RegistryConfig) -> AccountStore:
    store = AccountStore(config.database_path, busy_timeout=config.store_timeout)
    store.initialize()
    logger.info("Database initialised at %s", config.database_path)
    return store


def _serve(*, config: RegistryConfig, store: AccountStore, host: str, port: int) -> None:
    from account_registry.api import create_app
    import uvicorn

    logger.info("Starting account registry on http://%s:%s", host, port)

    app = create_app(config=config, store=store)
    uvicorn.run(app, host=host, port=port, log_level="info")


def _list_accounts(config: RegistryConfig, store: AccountStore) -> int:
    listing = ListingService(store, config)
    try:
        accounts = anyio.run(listing.list)
    except RegistryError as exc:
        cause = exc.__cause__ if isinstance(exc.__cause__, StoreError) else exc
        print(f"Failed to list accounts: {cause}", file=sys.stderr)
        return 1

    if not accounts:
        print("No accounts are currently registered.")
        return 0

    try:
        total = store.count()
    except StoreError as exc:
        print(f"Failed to count accounts: {exc}", file=sys.stderr)
        return 1

    print(f"Showing {len(accounts)} of {total} account(s):")
    print(f"{'Username':<32}  {'Role':<6}  Created")
    print("-" * 72)
    for account in accounts:
        created = account.created_at.strftime("%Y-%m-%d %H:%M:%S %Z")
        print(f"{account.username:<32}  {account.role.name:<6}  {created}")
    return 0


def _register(config: RegistryConfig, store: AccountStore, username: str) -> int:
    registration = RegistrationService(store, config)
    outcome = anyio.run(registration.register, username)
    if outcome.state is RegistrationState.INSERTED:
        print(f"Created account {outcome.username} ({outcome.location})")
        return 0
    print(f"Failed to create account: {outcome.message}", file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    try:
        config = load_config(args.config)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"Failed to load configuration: {exc}") from exc
    store = _initialise_store(config)

    if args.command == "serve":
        _serve(config=config, store=store, host=args.host, port=args.port)
    elif args.command == "init-db":
        print("Database initialisation complete.")
    elif args.command == "list-accounts":
        return _list_accounts(config, store)
    elif args.command == "register":
        return _register(config, store, args.username)
    return 0


if __name__ == "__main__":
    sys.exit(main())
