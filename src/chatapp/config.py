# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

# Anchor the default users.json path to the project root, not the cwd.
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_USERS_PATH = BASE_DIR / "data" / "users.json"

SESSION_TTL_SECONDS = 24 * 60 * 60


def _flag(value: str) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "y"}


@dataclass(frozen=True)
class Settings:
    secret_key: str
    users_path: Path = DEFAULT_USERS_PATH
    cookie_name: str = "chatapp_session"
    session_max_age: int = SESSION_TTL_SECONDS
    cookie_secure: bool = False
    session_salt: str = "chatapp.session.v1"
    cors_origins: Tuple[str, ...] = field(default=("http://localhost:3000",))

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("CHATAPP_SECRET_KEY") or os.getenv("SECRET_KEY")
        if not secret:
            raise RuntimeError("Missing CHATAPP_SECRET_KEY (or SECRET_KEY) in environment")
        origins = os.getenv("CHATAPP_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            secret_key=secret,
            users_path=Path(os.getenv("CHATAPP_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve(),
            cookie_name=os.getenv("CHATAPP_COOKIE_NAME", "chatapp_session"),
            session_max_age=int(os.getenv("CHATAPP_SESSION_MAX_AGE", str(SESSION_TTL_SECONDS))),
            cookie_secure=_flag(os.getenv("CHATAPP_COOKIE_SECURE", "false")),
            session_salt=os.getenv("CHATAPP_SESSION_SALT", "chatapp.session.v1"),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
