# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import Request, Response

from chatapp.auth.accounts import AccountRecord
from chatapp.config import Settings


def session_token(request: Request) -> Optional[str]:
    """Opaque session token carried by the request cookie, if its signature holds."""
    settings: Settings = request.app.state.settings
    raw = request.cookies.get(settings.cookie_name, "")
    return request.app.state.signer.unsign(raw)


def require_account(request: Request) -> AccountRecord:
    """Dependency: the account bound to the request's session (401/404 otherwise)."""
    return request.app.state.auth.current_account(session_token(request))


def cookie_settings(settings: Settings) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": settings.cookie_secure}


def set_session_cookie(request: Request, response: Response, token: str) -> None:
    settings: Settings = request.app.state.settings
    response.set_cookie(
        settings.cookie_name,
        request.app.state.signer.sign(token),
        max_age=settings.session_max_age,
        **cookie_settings(settings),
    )


def clear_session_cookie(request: Request, response: Response) -> None:
    settings: Settings = request.app.state.settings
    response.delete_cookie(settings.cookie_name, **cookie_settings(settings))
