"""FastAPI application exposing account registration and listing."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from .config import RegistryConfig, load_config
from .database import AccountStore
from .errors import MESSAGES, ErrorKind, RegistryError
from .listing import ListingService
from .models import Account
from .registration import RegistrationService, RegistrationState

logger = logging.getLogger("account_registry.api")

MISSING_CONTENT_TYPE = "Missing JSON content type in request header."
INVALID_JSON = "Invalid JSON syntax."
UNEXPECTED_STRUCTURE = "Given JSON data structure does not match expected parsed result."


class AccountResponse(BaseModel):
    username: str
    last_seen_at: str
    created_at: str
    role: int

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(**account.to_dict())


def _template_environment() -> Jinja2Templates:
    base_dir = Path(__file__).resolve().parent
    return Jinja2Templates(directory=str(base_dir / "templates"))


def _plain(status_code: int, message: str, headers: Optional[dict] = None) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code, headers=headers)


def _is_json_content_type(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or (mime.startswith("application/") and mime.endswith("+json"))


def create_app(
    *,
    config: RegistryConfig | None = None,
    store: AccountStore | None = None,
) -> FastAPI:
    """Instantiate the registry application with explicitly injected settings."""

    settings = config or load_config()
    account_store = store or AccountStore(settings.database_path, busy_timeout=settings.store_timeout)
    account_store.initialize()

    registration = RegistrationService(account_store, settings)
    listing = ListingService(account_store, settings)
    templates = _template_environment()

    app = FastAPI(
        title="Account Registry",
        version="0.1.0",
        description="Registers unique usernames and lists existing accounts.",
    )
    app.state.config = settings
    app.state.store = account_store
    app.state.registration = registration
    app.state.listing = listing

    @app.exception_handler(RegistryError)
    async def handle_registry_error(_: Request, exc: RegistryError):
        status_code = (
            status.HTTP_500_INTERNAL_SERVER_ERROR
            if exc.kind is ErrorKind.INTERNAL
            else status.HTTP_400_BAD_REQUEST
        )
        return _plain(status_code, exc.message)

    @app.get("/", response_class=HTMLResponse)
    async def home(request: Request) -> Response:
        return templates.TemplateResponse(request, "index.html", {"root": settings.public_url})

    @app.get("/users", response_class=HTMLResponse)
    async def users_page(request: Request) -> Response:
        try:
            accounts = await listing.list()
        except RegistryError:
            return HTMLResponse(
                "<h1>Internal server error: Cannot display users.</h1>",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return templates.TemplateResponse(
            request,
            "users.html",
            {
                "root": settings.public_url,
                "users": [account.to_dict() for account in accounts],
                "page_no": 1,
            },
        )

    @app.get("/api/users", response_model=List[AccountResponse])
    async def list_accounts() -> List[AccountResponse]:
        accounts = await listing.list()
        return [AccountResponse.from_account(account) for account in accounts]

    @app.post("/api/users", status_code=status.HTTP_201_CREATED)
    async def create_account(request: Request) -> Response:
        if not _is_json_content_type(request):
            return _plain(status.HTTP_400_BAD_REQUEST, MISSING_CONTENT_TYPE)

        body = await request.body()
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return _plain(status.HTTP_400_BAD_REQUEST, INVALID_JSON)
        if not isinstance(payload, dict):
            return _plain(status.HTTP_400_BAD_REQUEST, UNEXPECTED_STRUCTURE)

        outcome = await registration.register(payload.get("username"))

        if outcome.state is RegistrationState.INSERTED:
            return Response(status_code=status.HTTP_201_CREATED, headers={"Location": outcome.location or ""})
        if outcome.state is RegistrationState.FAILED:
            logger.warning("Registration for %s returned an internal error", outcome.username)
            return _plain(status.HTTP_500_INTERNAL_SERVER_ERROR, MESSAGES[ErrorKind.INTERNAL])
        return _plain(status.HTTP_400_BAD_REQUEST, outcome.message)

    @app.api_route(
        "/{unknown_path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def unknown_path(unknown_path: str) -> RedirectResponse:
        return RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)

    return app


__all__ = ["AccountResponse", "create_app"]
