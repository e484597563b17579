#!/usr/bin/env python3
from __future__ import annotations

import os
import uuid
from getpass import getpass
from pathlib import Path

from chatapp.auth.accounts import AccountRecord, JsonFileAccountStore, utcnow_iso
from chatapp.auth.passwords import hash_password
from chatapp.config import DEFAULT_USERS_PATH
from chatapp.errors import Conflict
from chatapp.services.auth_service import MIN_PASSWORD_LENGTH

USERS_PATH = Path(os.getenv("CHATAPP_USERS_PATH", str(DEFAULT_USERS_PATH))).resolve()


def main() -> None:
    store = JsonFileAccountStore(USERS_PATH)

    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    username = input("Username: ").strip()
    email = input("Email: ").strip()
    if not all([first_name, last_name, username, email]):
        raise SystemExit("All fields are required")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if len(pw1) < MIN_PASSWORD_LENGTH:
        raise SystemExit(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    record = AccountRecord(
        id=uuid.uuid4().hex,
        first_name=first_name,
        last_name=last_name,
        username=username,
        email=email,
        password_hash=hash_password(pw1),
        created_at=utcnow_iso(),
    )
    try:
        store.create(record)
    except Conflict as e:
        raise SystemExit(e.message)
    print(f"OK -> {USERS_PATH}")


if __name__ == "__main__":
    main()
