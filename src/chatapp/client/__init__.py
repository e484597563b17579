# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Client runtime: local auth cache, session reconciliation, typed local caches."""

from chatapp.client.api import ApiError, BackendUnavailable, ChatAppClient
from chatapp.client.cache import AuthCache
from chatapp.client.reconciler import SessionReconciler, ViewState
from chatapp.client.storage import MemoryStorage

__all__ = [
    "ApiError",
    "AuthCache",
    "BackendUnavailable",
    "ChatAppClient",
    "MemoryStorage",
    "SessionReconciler",
    "ViewState",
]
