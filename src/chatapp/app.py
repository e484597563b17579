# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatapp.auth.accounts import AccountRecord, AccountStore, JsonFileAccountStore, StorageError
from chatapp.auth.sessions import CookieSigner, SessionStore
from chatapp.config import Settings
from chatapp.errors import ChatAppError, Internal
from chatapp.logging import get_logger
from chatapp.permissions import clear_session_cookie, require_account, session_token, set_session_cookie
from chatapp.schemas import LoginIn, ProfileUpdateIn, RegisterIn
from chatapp.services.auth_service import AuthService

logger = get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChatAppError)
    async def _chatapp_error(request: Request, exc: ChatAppError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn("request_failed", status_code=exc.status_code, message=exc.message)
        return _error(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body")

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError):
        logger.error("storage_error", error=str(exc))
        return _error(500, Internal().message)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("unhandled_error", error_type=type(exc).__name__)
        return _error(500, Internal().message)


def create_app(
    settings: Optional[Settings] = None,
    *,
    accounts: Optional[AccountStore] = None,
    sessions: Optional[SessionStore] = None,
) -> FastAPI:
    """Build the application around explicitly constructed stores.

    Anything not passed in is built from ``settings`` (or the environment).
    The stores stay reachable on ``app.state`` so tests can inspect and reset them.
    """
    settings = settings or Settings.from_env()
    accounts = accounts if accounts is not None else JsonFileAccountStore(settings.users_path)
    sessions = sessions if sessions is not None else SessionStore(ttl_seconds=settings.session_max_age)

    app = FastAPI(title="chatapp")
    app.state.settings = settings
    app.state.accounts = accounts
    app.state.sessions = sessions
    app.state.signer = CookieSigner(settings.secret_key, settings.session_salt, settings.session_max_age)
    app.state.auth = AuthService(accounts, sessions)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=uuid.uuid4().hex[:12],
            method=request.method,
            path=request.url.path,
        )
        return await call_next(request)

    _register_exception_handlers(app)

    # ------------------ Routes ------------------

    @app.get("/")
    def root():
        return {
            "message": "chatapp API",
            "status": "running",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/auth/register", status_code=201)
    def register(body: RegisterIn, request: Request):
        record, token = request.app.state.auth.register(
            first_name=body.first_name,
            last_name=body.last_name,
            username=body.username,
            password=body.password,
            password_confirmation=body.password_confirmation,
            email=body.email,
        )
        resp = JSONResponse({"message": "User registered successfully", "user": record.public()}, status_code=201)
        set_session_cookie(request, resp, token)
        return resp

    @app.post("/auth/login")
    def login(body: LoginIn, request: Request):
        record, token = request.app.state.auth.login(identifier=body.username, password=body.password)
        resp = JSONResponse({"message": "Login successful", "user": record.public()})
        set_session_cookie(request, resp, token)
        return resp

    @app.post("/auth/logout")
    def logout(request: Request):
        request.app.state.auth.logout(session_token(request))
        resp = JSONResponse({"message": "Logout successful"})
        clear_session_cookie(request, resp)
        return resp

    @app.get("/auth/profile")
    def profile(account: AccountRecord = Depends(require_account)):
        return {"user": account.public()}

    @app.put("/auth/profile")
    def update_profile(body: ProfileUpdateIn, request: Request):
        record = request.app.state.auth.update_profile(
            session_token(request),
            first_name=body.first_name,
            last_name=body.last_name,
            username=body.username,
            email=body.email,
        )
        return {"message": "Profile updated successfully", "user": record.public()}

    @app.get("/api/users")
    def list_users(request: Request, account: AccountRecord = Depends(require_account)):
        users = [r.public() for r in request.app.state.auth.list_accounts()]
        return {"count": len(users), "users": users}

    return app
