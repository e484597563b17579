# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from pydantic import ValidationError

from chatapp.client.records import UserRecord, utcnow
from chatapp.client.storage import KeyValueStorage
from chatapp.logging import get_logger

AUTH_CACHE_KEY = "chatAppUser"
CACHE_VERSION = 1
DEFAULT_MAX_AGE = timedelta(days=30)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedUser:
    user: UserRecord
    captured_at: Optional[datetime]


class AuthCache:
    """Local copy of the authenticated user's outward-facing record.

    Only this class reads or writes ``AUTH_CACHE_KEY``.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.storage = storage
        self.max_age = max_age
        self._clock = clock

    def store(self, user: UserRecord) -> None:
        payload = {
            "version": CACHE_VERSION,
            "captured_at": self._clock().isoformat(),
            "user": user.to_wire(),
        }
        self.storage.set_item(AUTH_CACHE_KEY, json.dumps(payload))
        logger.debug("auth_cache_stored", account_id=user.id, username=user.username)

    def read_entry(self) -> Optional[CachedUser]:
        raw = self.storage.get_item(AUTH_CACHE_KEY)
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise ValueError("cached user is not an object")
            if "version" not in payload:
                # Written by a client that stored the bare user record.
                return CachedUser(user=UserRecord.model_validate(payload), captured_at=None)
            if payload.get("version") != CACHE_VERSION:
                raise ValueError(f"unsupported cache version {payload.get('version')!r}")
            captured = payload.get("captured_at")
            return CachedUser(
                user=UserRecord.model_validate(payload.get("user")),
                captured_at=datetime.fromisoformat(captured) if captured else None,
            )
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("auth_cache_corrupt", error=str(e))
            self.clear()
            return None

    def read(self) -> Optional[UserRecord]:
        entry = self.read_entry()
        return entry.user if entry else None

    def clear(self) -> None:
        self.storage.remove_item(AUTH_CACHE_KEY)
        logger.debug("auth_cache_cleared")

    def is_stale(self, user: Optional[UserRecord]) -> bool:
        if user is None or not user.id or not user.username:
            return True
        freshest = user.freshest_timestamp()
        if freshest is None:
            return True
        return self._clock() - freshest > self.max_age
