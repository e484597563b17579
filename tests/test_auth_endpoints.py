from dataclasses import replace

from argon2 import PasswordHasher
from fastapi.testclient import TestClient

from chatapp.app import create_app
from chatapp.auth.accounts import JsonFileAccountStore
from chatapp.auth.passwords import needs_rehash, verify_password

from conftest import ALICE

BOB = {**ALICE, "firstName": "Bob", "username": "bob", "email": "b@x.com"}


def _cookie_attrs(set_cookie: str) -> dict:
    parts = [p.strip() for p in set_cookie.split(";")]
    attrs = {}
    for p in parts[1:]:
        k, _, v = p.partition("=")
        attrs[k.lower()] = v
    return attrs


def test_root_reports_running(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


def test_register_login_logout_end_to_end(client):
    r = client.post("/auth/register", json=ALICE)
    assert r.status_code == 201
    user = r.json()["user"]
    assert user["username"] == "alice"
    assert "password" not in user and "passwordHash" not in user
    assert user["createdAt"] and user["lastLogin"]

    r = client.get("/auth/profile")
    assert r.status_code == 200
    assert r.json()["user"]["id"] == user["id"]
    assert r.json()["user"]["username"] == "alice"

    r = client.post("/auth/login", json={"username": "alice", "password": "wrong-pass"})
    assert r.status_code == 401

    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/profile").status_code == 401


def test_session_cookie_attributes(client):
    r = client.post("/auth/register", json=ALICE)
    attrs = _cookie_attrs(r.headers["set-cookie"])
    assert "httponly" in attrs
    assert attrs["samesite"].lower() == "lax"
    assert attrs["max-age"] == "86400"
    assert "secure" not in attrs


def test_registered_account_is_stored_with_verifiable_hash(client, alice, users_path):
    store = JsonFileAccountStore(users_path)
    by_name = store.find_by_username_or_email("alice")
    by_email = store.find_by_username_or_email("a@x.com")
    assert by_name.id == by_email.id == alice["id"]
    assert verify_password(by_name.password_hash, "secret1")
    assert not verify_password(by_name.password_hash, "secret2")


def test_register_validation_errors(client):
    missing = {k: v for k, v in ALICE.items() if k != "email"}
    r = client.post("/auth/register", json=missing)
    assert r.status_code == 400
    assert r.json()["error"] == "All fields are required"

    r = client.post("/auth/register", json={**ALICE, "passwordConfirmation": "secret2"})
    assert r.status_code == 400
    assert r.json()["error"] == "Passwords do not match"

    r = client.post("/auth/register", json={**ALICE, "password": "abc", "passwordConfirmation": "abc"})
    assert r.status_code == 400
    assert "at least 6" in r.json()["error"]

    r = client.post("/auth/register", content="not json", headers={"content-type": "application/json"})
    assert r.status_code == 400


def test_register_duplicate_username_or_email(client, alice):
    r = client.post("/auth/register", json={**ALICE, "email": "other@x.com"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"

    r = client.post("/auth/register", json={**ALICE, "username": "alice2"})
    assert r.status_code == 400
    assert r.json()["error"] == "User already exists"


def test_login_by_username_or_email_binds_session(client, alice, app):
    client.post("/auth/logout")
    for ident in ("alice", "a@x.com"):
        r = client.post("/auth/login", json={"username": ident, "password": "secret1"})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == alice["id"]
        token = app.state.signer.unsign(client.cookies.get(app.state.settings.cookie_name))
        assert app.state.sessions.resolve(token) == alice["id"]


def test_login_updates_last_login(client, alice, users_path):
    before = JsonFileAccountStore(users_path).find_by_id(alice["id"]).last_login
    client.post("/auth/logout")
    r = client.post("/auth/login", json={"username": "alice", "password": "secret1"})
    after = JsonFileAccountStore(users_path).find_by_id(alice["id"]).last_login
    assert r.json()["user"]["lastLogin"] == after
    assert after >= before


def test_login_upgrades_hash_made_with_other_cost(client, alice, app):
    record = app.state.accounts.find_by_id(alice["id"])
    weak = PasswordHasher(time_cost=1, memory_cost=8192, parallelism=1).hash("secret1")
    app.state.accounts.update(replace(record, password_hash=weak))
    client.post("/auth/logout")

    r = client.post("/auth/login", json={"username": "alice", "password": "secret1"})
    assert r.status_code == 200
    upgraded = app.state.accounts.find_by_id(alice["id"]).password_hash
    assert upgraded != weak
    assert not needs_rehash(upgraded)
    assert verify_password(upgraded, "secret1")


def test_login_failures_are_uniform_and_create_no_session(client, alice, sessions):
    client.post("/auth/logout")
    assert len(sessions) == 0

    wrong = client.post("/auth/login", json={"username": "alice", "password": "nope123"})
    unknown = client.post("/auth/login", json={"username": "nobody", "password": "nope123"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}
    assert "set-cookie" not in wrong.headers
    assert len(sessions) == 0

    r = client.post("/auth/login", json={"username": "alice"})
    assert r.status_code == 400


def test_logout_without_session_succeeds(client, sessions):
    r = client.post("/auth/logout")
    assert r.status_code == 200
    assert len(sessions) == 0


def test_expired_session_is_unauthorized_without_leaking_id(client, alice, clock):
    clock.advance(24 * 60 * 60 + 1)
    r = client.get("/auth/profile")
    assert r.status_code == 401
    assert alice["id"] not in r.text


def test_tampered_or_unknown_cookie_is_unauthorized(app, alice):
    name = app.state.settings.cookie_name
    with TestClient(app) as anon:
        for value in ("forged-value", app.state.signer.sign("never-issued")):
            r = anon.get("/auth/profile", headers={"cookie": f"{name}={value}"})
            assert r.status_code == 401


def test_profile_of_deleted_account_is_not_found(client, alice, app):
    app.state.accounts.delete(alice["id"])
    assert client.get("/auth/profile").status_code == 404


def test_update_profile(client, alice):
    r = client.put("/auth/profile", json={"firstName": "Alicia"})
    assert r.status_code == 200
    assert r.json()["user"]["firstName"] == "Alicia"
    assert client.get("/auth/profile").json()["user"]["firstName"] == "Alicia"

    r = client.put("/auth/profile", json={"lastName": "  "})
    assert r.status_code == 400


def test_update_profile_rejects_taken_username(app, alice):
    with TestClient(app) as other:
        other.post("/auth/register", json=BOB)
        r = other.put("/auth/profile", json={"username": "alice"})
        assert r.status_code == 400
        assert r.json()["error"] == "User already exists"


def test_update_profile_requires_session(client):
    assert client.put("/auth/profile", json={"firstName": "X"}).status_code == 401


def test_user_directory(client, app, alice):
    with TestClient(app) as other:
        other.post("/auth/register", json=BOB)
    r = client.get("/api/users")
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert {u["username"] for u in body["users"]} == {"alice", "bob"}
    assert all("passwordHash" not in u for u in body["users"])

    client.post("/auth/logout")
    assert client.get("/api/users").status_code == 401


def test_storage_failure_is_internal_without_detail(settings, sessions):
    settings.users_path.parent.mkdir(parents=True, exist_ok=True)
    settings.users_path.write_text("{broken", encoding="utf-8")
    with TestClient(create_app(settings, sessions=sessions)) as c:
        r = c.post("/auth/register", json=ALICE)
    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
