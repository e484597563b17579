# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from chatapp.config import SESSION_TTL_SECONDS
from chatapp.errors import Unauthorized


class SessionNotFound(Unauthorized):
    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class SessionData:
    account_id: str
    expires_at: float


class SessionStore:
    """Opaque token -> account id, each binding valid for a fixed TTL from creation."""

    def __init__(self, ttl_seconds: int = SESSION_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionData] = {}

    def create(self, account_id: str) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._purge_expired()
            self._sessions[token] = SessionData(
                account_id=account_id,
                expires_at=self._clock() + self.ttl_seconds,
            )
        return token

    def _purge_expired(self) -> None:
        # caller holds the lock
        now = self._clock()
        for t in [t for t, d in self._sessions.items() if now >= d.expires_at]:
            del self._sessions[t]

    def resolve(self, token: Optional[str]) -> str:
        if not token:
            raise SessionNotFound()
        with self._lock:
            data = self._sessions.get(token)
            if data is None:
                raise SessionNotFound()
            if self._clock() >= data.expires_at:
                del self._sessions[token]
                raise SessionNotFound("Session expired")
            return data.account_id

    def destroy(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


class CookieSigner:
    """Signs session tokens for the cookie so a forged value never reaches the store."""

    def __init__(self, secret_key: str, salt: str = "chatapp.session.v1", max_age: int = SESSION_TTL_SECONDS) -> None:
        if not secret_key:
            raise RuntimeError("Missing secret key for session cookies")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def sign(self, token: str) -> str:
        return self._serializer.dumps({"t": token})

    def unsign(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        t = str((data or {}).get("t") or "").strip() if isinstance(data, dict) else ""
        return t or None
