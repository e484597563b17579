# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from chatapp.client.records import UserRecord

DEFAULT_BACKEND_URL = "http://localhost:5055"


class ApiError(Exception):
    """The backend answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class BackendUnavailable(Exception):
    """The backend could not be reached at all."""


class ChatAppClient:
    """Thin client over the auth and user endpoints.

    Session cookies live in the underlying ``httpx.Client`` jar, the way a
    browser sends them with ``credentials: 'include'``.
    """

    def __init__(self, http: httpx.Client) -> None:
        self.http = http

    @classmethod
    def connect(cls, base_url: str = DEFAULT_BACKEND_URL, timeout: float = 10.0) -> "ChatAppClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout))

    def _request(self, method: str, path: str, json: Optional[dict] = None) -> Dict[str, Any]:
        try:
            resp = self.http.request(method, path, json=json)
        except httpx.TransportError as e:
            raise BackendUnavailable(str(e)) from e
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if resp.is_success:
            return data if isinstance(data, dict) else {}
        message = data.get("error") if isinstance(data, dict) else None
        raise ApiError(resp.status_code, message or resp.reason_phrase or "Request failed")

    def register(
        self,
        *,
        first_name: str,
        last_name: str,
        username: str,
        email: str,
        password: str,
        password_confirmation: str,
    ) -> UserRecord:
        data = self._request(
            "POST",
            "/auth/register",
            json={
                "firstName": first_name,
                "lastName": last_name,
                "username": username,
                "email": email,
                "password": password,
                "passwordConfirmation": password_confirmation,
            },
        )
        return UserRecord.model_validate(data.get("user") or {})

    def login(self, identifier: str, password: str) -> UserRecord:
        data = self._request("POST", "/auth/login", json={"username": identifier, "password": password})
        return UserRecord.model_validate(data.get("user") or {})

    def logout(self) -> None:
        self._request("POST", "/auth/logout")

    def profile(self) -> UserRecord:
        data = self._request("GET", "/auth/profile")
        return UserRecord.model_validate(data.get("user") or {})

    def update_profile(self, **fields: str) -> UserRecord:
        wire = {"first_name": "firstName", "last_name": "lastName", "username": "username", "email": "email"}
        body = {wire[k]: v for k, v in fields.items() if k in wire and v is not None}
        data = self._request("PUT", "/auth/profile", json=body)
        return UserRecord.model_validate(data.get("user") or {})

    def users(self) -> List[UserRecord]:
        data = self._request("GET", "/api/users")
        return [UserRecord.model_validate(u) for u in data.get("users") or []]

    def close(self) -> None:
        self.http.close()
