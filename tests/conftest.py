import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from chatapp.app import create_app
from chatapp.auth.sessions import SessionStore
from chatapp.config import Settings

ALICE = {
    "firstName": "Alice",
    "lastName": "Liddell",
    "username": "alice",
    "password": "secret1",
    "passwordConfirmation": "secret1",
    "email": "a@x.com",
}

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic seconds clock the tests can move forward."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "users.json"


@pytest.fixture()
def settings(users_path: Path) -> Settings:
    return Settings(secret_key="test-secret-key", users_path=users_path)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sessions(clock):
    store = SessionStore(clock=clock)
    yield store
    store.clear()


@pytest.fixture()
def app(settings, sessions):
    return create_app(settings, sessions=sessions)


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def alice(client):
    """Register alice and return her outward record; the client keeps her session."""
    r = client.post("/auth/register", json=ALICE)
    assert r.status_code == 201
    return r.json()["user"]
