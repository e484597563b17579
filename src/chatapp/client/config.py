# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from chatapp.client.api import DEFAULT_BACKEND_URL, ChatAppClient
from chatapp.client.cache import DEFAULT_MAX_AGE, AuthCache
from chatapp.client.reconciler import REVALIDATE_INTERVAL_SECONDS, SessionReconciler
from chatapp.client.storage import KeyValueStorage


@dataclass(frozen=True)
class ClientSettings:
    backend_url: str = DEFAULT_BACKEND_URL
    timeout: float = 10.0
    revalidate_interval: float = REVALIDATE_INTERVAL_SECONDS
    cache_max_age: timedelta = DEFAULT_MAX_AGE

    @classmethod
    def from_env(cls) -> "ClientSettings":
        return cls(
            backend_url=os.getenv("CHATAPP_BACKEND_URL", DEFAULT_BACKEND_URL),
            timeout=float(os.getenv("CHATAPP_CLIENT_TIMEOUT", "10")),
            revalidate_interval=float(os.getenv("CHATAPP_REVALIDATE_SECONDS", str(REVALIDATE_INTERVAL_SECONDS))),
            cache_max_age=timedelta(days=int(os.getenv("CHATAPP_CACHE_MAX_AGE_DAYS", "30"))),
        )


def build_reconciler(
    settings: ClientSettings,
    storage: KeyValueStorage,
    *,
    route: str = "/",
    navigate: Optional[Callable[[str], None]] = None,
) -> SessionReconciler:
    """Wire a reconciler for one client context from settings."""
    return SessionReconciler(
        ChatAppClient.connect(settings.backend_url, timeout=settings.timeout),
        AuthCache(storage, max_age=settings.cache_max_age),
        storage,
        route=route,
        navigate=navigate,
        interval=settings.revalidate_interval,
    )
