# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
import os
import tempfile
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from chatapp.errors import Conflict, NotFound


class StorageError(Exception):
    """The backing file could not be read or written."""


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class AccountRecord:
    id: str
    first_name: str
    last_name: str
    username: str
    email: str
    password_hash: str
    created_at: str
    last_login: Optional[str] = None

    def public(self) -> dict:
        """Outward-facing form: wire field names, no password hash."""
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "username": self.username,
            "email": self.email,
            "createdAt": self.created_at,
            "lastLogin": self.last_login,
        }

    def to_json(self) -> dict:
        out = self.public()
        out["passwordHash"] = self.password_hash
        return out

    @classmethod
    def from_json(cls, raw: dict) -> "AccountRecord":
        return cls(
            id=str(raw.get("id") or ""),
            first_name=str(raw.get("firstName") or ""),
            last_name=str(raw.get("lastName") or ""),
            username=str(raw.get("username") or ""),
            email=str(raw.get("email") or ""),
            password_hash=str(raw.get("passwordHash") or ""),
            created_at=str(raw.get("createdAt") or ""),
            last_login=raw.get("lastLogin") or None,
        )

    def touch_login(self, when: Optional[str] = None) -> "AccountRecord":
        return replace(self, last_login=when or utcnow_iso())


def _same(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def _check_unique(records: List[AccountRecord], candidate: AccountRecord) -> None:
    for r in records:
        if r.id == candidate.id:
            continue
        if _same(r.username, candidate.username) or _same(r.email, candidate.email):
            raise Conflict("User already exists")


class AccountStore(Protocol):
    def create(self, record: AccountRecord) -> AccountRecord: ...

    def find_by_username_or_email(self, identifier: str) -> AccountRecord: ...

    def find_by_id(self, account_id: str) -> AccountRecord: ...

    def update(self, record: AccountRecord) -> AccountRecord: ...

    def list(self) -> List[AccountRecord]: ...

    def delete(self, account_id: str) -> None: ...


class _CollectionStore:
    """get/put/list over a whole collection; subclasses provide the two I/O calls.

    Every mutation is a read-modify-write of the full collection under one
    lock. Writers in other processes are not coordinated: last write wins.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def _read_all(self) -> List[AccountRecord]:
        raise NotImplementedError

    def _write_all(self, records: List[AccountRecord]) -> None:
        raise NotImplementedError

    def list(self) -> List[AccountRecord]:
        return self._read_all()

    def create(self, record: AccountRecord) -> AccountRecord:
        with self._lock:
            records = self._read_all()
            _check_unique(records, record)
            records.append(record)
            self._write_all(records)
        return record

    def update(self, record: AccountRecord) -> AccountRecord:
        with self._lock:
            records = self._read_all()
            idx = next((i for i, r in enumerate(records) if r.id == record.id), None)
            if idx is None:
                raise NotFound("User not found")
            _check_unique(records, record)
            records[idx] = record
            self._write_all(records)
        return record

    def delete(self, account_id: str) -> None:
        with self._lock:
            records = self._read_all()
            self._write_all([r for r in records if r.id != account_id])

    def find_by_id(self, account_id: str) -> AccountRecord:
        for r in self._read_all():
            if r.id == account_id:
                return r
        raise NotFound("User not found")

    def find_by_username_or_email(self, identifier: str) -> AccountRecord:
        ident = (identifier or "").strip()
        if ident:
            for r in self._read_all():
                if _same(r.username, ident) or _same(r.email, ident):
                    return r
        raise NotFound("User not found")


class JsonFileAccountStore(_CollectionStore):
    """Accounts kept as one JSON array on disk, rewritten in full on every change."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)

    def _read_all(self) -> List[AccountRecord]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(raw, list):
            raise StorageError(f"{self.path} does not hold a JSON array")
        return [AccountRecord.from_json(item) for item in raw if isinstance(item, dict)]

    def _write_all(self, records: List[AccountRecord]) -> None:
        payload = json.dumps([r.to_json() for r in records], indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # one temp file per write, so concurrent writers never share it
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp", delete=False
            ) as fh:
                tmp = Path(fh.name)
                fh.write(payload)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
        try:
            os.replace(tmp, self.path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise StorageError(f"Cannot write {self.path}: {e}") from e


class MemoryAccountStore(_CollectionStore):
    def __init__(self, records: Optional[List[AccountRecord]] = None) -> None:
        super().__init__()
        self._records: Dict[str, AccountRecord] = {r.id: r for r in (records or [])}

    def _read_all(self) -> List[AccountRecord]:
        return list(self._records.values())

    def _write_all(self, records: List[AccountRecord]) -> None:
        self._records = {r.id: r for r in records}
