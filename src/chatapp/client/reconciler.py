# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Keeps the client's authenticated/anonymous view in line with the server session.

The local auth cache is the fast path, ``GET /auth/profile`` is the ground
truth. Three things can change the view concurrently: explicit user actions,
the background revalidation timer, and storage events from other contexts.
Every auth check takes a generation number when it starts and may only touch
the view if no newer check or action has started since.
"""

from __future__ import annotations

import enum
import threading
from typing import Callable, Optional

from chatapp.client.api import ApiError, BackendUnavailable, ChatAppClient
from chatapp.client.cache import AUTH_CACHE_KEY, AuthCache
from chatapp.client.records import UserRecord
from chatapp.client.storage import KeyValueStorage, StorageEvent
from chatapp.logging import get_logger

LOGIN_ROUTE = "/login"
HOME_ROUTE = "/"
REVALIDATE_INTERVAL_SECONDS = 5 * 60

logger = get_logger(__name__)


class ViewState(enum.Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    BACKEND_UNAVAILABLE = "backend_unavailable"


class SessionReconciler:
    def __init__(
        self,
        api: ChatAppClient,
        cache: AuthCache,
        storage: KeyValueStorage,
        *,
        route: str = HOME_ROUTE,
        navigate: Optional[Callable[[str], None]] = None,
        interval: float = REVALIDATE_INTERVAL_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self.api = api
        self.cache = cache
        self.interval = interval
        self.route = route
        self.view = ViewState.LOADING
        self.user: Optional[UserRecord] = None
        self._navigate_cb = navigate
        self._timer_factory = timer_factory
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.RLock()
        self._generation = 0
        self._unsubscribe = storage.subscribe(self._on_storage_event)

    # ------------------ view state ------------------

    def _begin(self) -> int:
        with self._lock:
            self._generation += 1
            return self._generation

    def _current(self, generation: int) -> bool:
        return generation == self._generation

    def navigate(self, route: str) -> None:
        with self._lock:
            self.route = route
        if self._navigate_cb is not None:
            self._navigate_cb(route)

    def _adopt(self, user: UserRecord) -> None:
        self.user = user
        self.view = ViewState.AUTHENTICATED
        if self.route == LOGIN_ROUTE:
            self.navigate(HOME_ROUTE)

    def _drop_to_anonymous(self) -> None:
        self.user = None
        self.view = ViewState.ANONYMOUS
        if self.route != LOGIN_ROUTE:
            self.navigate(LOGIN_ROUTE)

    @property
    def authenticated(self) -> bool:
        return self.view is ViewState.AUTHENTICATED

    # ------------------ checks ------------------

    def load(self) -> ViewState:
        """App start: trust a fresh cache, otherwise ask the server."""
        generation = self._begin()
        cached = self.cache.read()
        if cached is not None and not self.cache.is_stale(cached):
            with self._lock:
                if self._current(generation):
                    logger.debug("reconciler_cache_hit", account_id=cached.id)
                    self._adopt(cached)
            return self.view
        return self._check(generation, background=False)

    def revalidate(self) -> ViewState:
        """Background check; only an explicit 401 evicts the local user."""
        if not self.authenticated:
            return self.view
        return self._check(self._begin(), background=True)

    def _check(self, generation: int, *, background: bool) -> ViewState:
        try:
            user = self.api.profile()
        except ApiError as e:
            with self._lock:
                if not self._current(generation):
                    logger.debug("reconciler_stale_response", status_code=e.status_code)
                elif e.status_code == 401:
                    if background:
                        logger.info("session_expired")
                    self.cache.clear()
                    self._drop_to_anonymous()
                elif not background:
                    logger.warning("reconciler_backend_error", status_code=e.status_code)
                    self.view = ViewState.BACKEND_UNAVAILABLE
            return self.view
        except BackendUnavailable as e:
            with self._lock:
                if self._current(generation) and not background:
                    logger.warning("reconciler_backend_unavailable", error=str(e))
                    self.view = ViewState.BACKEND_UNAVAILABLE
            return self.view

        with self._lock:
            if self._current(generation):
                self.cache.store(user)
                self._adopt(user)
            else:
                logger.debug("reconciler_stale_response", status_code=200)
        return self.view

    def _on_storage_event(self, event: StorageEvent) -> None:
        if event.key not in (AUTH_CACHE_KEY, None) or event.new_value is not None:
            return
        with self._lock:
            self._begin()
            if self.authenticated:
                logger.info("reconciler_cleared_elsewhere")
                self._drop_to_anonymous()

    # ------------------ user actions ------------------

    def login(self, identifier: str, password: str) -> UserRecord:
        generation = self._begin()
        user = self.api.login(identifier, password)
        return self._accept(generation, user)

    def register(self, **fields: str) -> UserRecord:
        generation = self._begin()
        user = self.api.register(**fields)
        return self._accept(generation, user)

    def _accept(self, generation: int, user: UserRecord) -> UserRecord:
        with self._lock:
            if self._current(generation):
                self.cache.store(user)
                self._adopt(user)
                if self.route != HOME_ROUTE:
                    self.navigate(HOME_ROUTE)
        return user

    def logout(self) -> None:
        """Always ends up anonymous, even when the server cannot be told."""
        self._begin()
        try:
            self.api.logout()
        except (ApiError, BackendUnavailable) as e:
            logger.warning("logout_request_failed", error=str(e))
        with self._lock:
            self._begin()
            self.cache.clear()
            self.user = None
            self.view = ViewState.ANONYMOUS
            self.navigate(LOGIN_ROUTE)

    # ------------------ background timer ------------------

    def start(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._schedule()

    def _schedule(self) -> None:
        timer = self._timer_factory(self.interval, self._tick)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _tick(self) -> None:
        try:
            self.revalidate()
        finally:
            with self._lock:
                if self._timer is not None:
                    self._schedule()

    def stop(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def close(self) -> None:
        self.stop()
        self._unsubscribe()
