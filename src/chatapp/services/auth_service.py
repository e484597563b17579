# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import List, Optional, Tuple

from chatapp.auth.accounts import AccountRecord, AccountStore, utcnow_iso
from chatapp.auth.passwords import hash_password, needs_rehash, verify_password
from chatapp.auth.sessions import SessionStore
from chatapp.errors import BadRequest, NotFound, Unauthorized
from chatapp.logging import get_logger

MIN_PASSWORD_LENGTH = 6
INVALID_CREDENTIALS = "Invalid credentials"

logger = get_logger(__name__)


def _clean(value: Optional[str]) -> str:
    return str(value or "").strip()


class AuthService:
    """Register/login/logout/profile on top of an account store and a session store.

    Input validation happens here, before either store is touched.
    """

    def __init__(self, accounts: AccountStore, sessions: SessionStore) -> None:
        self.accounts = accounts
        self.sessions = sessions

    def register(
        self,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        username: Optional[str],
        password: Optional[str],
        password_confirmation: Optional[str],
        email: Optional[str],
    ) -> Tuple[AccountRecord, str]:
        fields = [_clean(first_name), _clean(last_name), _clean(username), _clean(email)]
        if not all(fields) or not password or not password_confirmation:
            raise BadRequest("All fields are required")
        if password != password_confirmation:
            raise BadRequest("Passwords do not match")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

        now = utcnow_iso()
        record = AccountRecord(
            id=uuid.uuid4().hex,
            first_name=fields[0],
            last_name=fields[1],
            username=fields[2],
            email=fields[3],
            password_hash=hash_password(password),
            created_at=now,
            last_login=now,
        )
        self.accounts.create(record)
        token = self.sessions.create(record.id)
        logger.info("account_registered", account_id=record.id, username=record.username)
        return record, token

    def login(self, *, identifier: Optional[str], password: Optional[str]) -> Tuple[AccountRecord, str]:
        ident = _clean(identifier)
        if not ident or not password:
            raise BadRequest("Username and password are required")
        try:
            record = self.accounts.find_by_username_or_email(ident)
        except NotFound:
            logger.info("login_failed", identifier=ident)
            raise Unauthorized(INVALID_CREDENTIALS) from None
        if not verify_password(record.password_hash, password):
            logger.info("login_failed", identifier=ident)
            raise Unauthorized(INVALID_CREDENTIALS)

        if needs_rehash(record.password_hash):
            record = replace(record, password_hash=hash_password(password))
            logger.info("password_rehashed", account_id=record.id)
        record = self.accounts.update(record.touch_login())
        token = self.sessions.create(record.id)
        logger.info("login_succeeded", account_id=record.id)
        return record, token

    def logout(self, token: Optional[str]) -> None:
        self.sessions.destroy(token)
        logger.info("logout")

    def current_account(self, token: Optional[str]) -> AccountRecord:
        account_id = self.sessions.resolve(token)
        return self.accounts.find_by_id(account_id)

    def update_profile(
        self,
        token: Optional[str],
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> AccountRecord:
        record = self.current_account(token)
        changes = {}
        for attr, value in (
            ("first_name", first_name),
            ("last_name", last_name),
            ("username", username),
            ("email", email),
        ):
            if value is None:
                continue
            v = _clean(value)
            if not v:
                raise BadRequest(f"{attr.replace('_', ' ').capitalize()} cannot be empty")
            changes[attr] = v
        if not changes:
            return record
        updated = self.accounts.update(replace(record, **changes))
        logger.info("profile_updated", account_id=updated.id, fields=sorted(changes))
        return updated

    def list_accounts(self) -> List[AccountRecord]:
        return self.accounts.list()
