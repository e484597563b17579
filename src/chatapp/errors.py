# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the auth service and the HTTP layer.

Each class carries the HTTP status it is rendered with. Duplicate identities
are reported as 400, the status the frontend already handles for every
registration failure.
"""

from __future__ import annotations


class ChatAppError(Exception):
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequest(ChatAppError):
    status_code = 400


class Conflict(ChatAppError):
    status_code = 400


class Unauthorized(ChatAppError):
    status_code = 401


class NotFound(ChatAppError):
    status_code = 404


class Internal(ChatAppError):
    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
