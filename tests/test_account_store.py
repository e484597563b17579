import json
import threading
from dataclasses import replace

import pytest

from chatapp.auth.accounts import (
    AccountRecord,
    JsonFileAccountStore,
    MemoryAccountStore,
    StorageError,
)
from chatapp.errors import Conflict, NotFound


def _record(i: str, username: str, email: str) -> AccountRecord:
    return AccountRecord(
        id=i,
        first_name="F",
        last_name="L",
        username=username,
        email=email,
        password_hash="$argon2id$fake",
        created_at="2026-10-19T12:00:00Z",
    )


@pytest.fixture(params=["json", "memory"])
def store(request, tmp_path):
    if request.param == "json":
        return JsonFileAccountStore(tmp_path / "users.json")
    return MemoryAccountStore()


def test_create_then_find_by_username_email_and_id(store):
    store.create(_record("1", "alice", "a@x.com"))
    assert store.find_by_username_or_email("alice").id == "1"
    assert store.find_by_username_or_email("a@x.com").id == "1"
    assert store.find_by_username_or_email("ALICE").id == "1"
    assert store.find_by_id("1").username == "alice"


def test_missing_lookups_raise_not_found(store):
    with pytest.raises(NotFound):
        store.find_by_username_or_email("nobody")
    with pytest.raises(NotFound):
        store.find_by_username_or_email("")
    with pytest.raises(NotFound):
        store.find_by_id("42")


def test_duplicate_username_or_email_conflicts(store):
    store.create(_record("1", "alice", "a@x.com"))
    with pytest.raises(Conflict):
        store.create(_record("2", "alice", "other@x.com"))
    with pytest.raises(Conflict):
        store.create(_record("3", "alice2", "A@x.com"))
    assert len(store.list()) == 1


def test_update_replaces_record_and_keeps_uniqueness(store):
    store.create(_record("1", "alice", "a@x.com"))
    store.create(_record("2", "bob", "b@x.com"))
    store.update(replace(store.find_by_id("1"), first_name="Alicia"))
    assert store.find_by_id("1").first_name == "Alicia"
    with pytest.raises(Conflict):
        store.update(replace(store.find_by_id("2"), username="alice"))
    with pytest.raises(NotFound):
        store.update(_record("99", "zed", "z@x.com"))


def test_delete_removes_record(store):
    store.create(_record("1", "alice", "a@x.com"))
    store.delete("1")
    store.delete("1")
    assert store.list() == []


def test_json_file_is_a_full_array_without_public_leak(tmp_path):
    path = tmp_path / "nested" / "users.json"
    store = JsonFileAccountStore(path)
    assert store.list() == []
    store.create(_record("1", "alice", "a@x.com"))
    store.create(_record("2", "bob", "b@x.com"))
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert [r["username"] for r in raw] == ["alice", "bob"]
    assert raw[0]["passwordHash"] == "$argon2id$fake"
    assert "passwordHash" not in store.find_by_id("1").public()


def test_last_writer_wins_across_store_instances(tmp_path):
    path = tmp_path / "users.json"
    a = JsonFileAccountStore(path)
    b = JsonFileAccountStore(path)
    a.create(_record("1", "alice", "a@x.com"))
    stale = b.find_by_id("1")
    a.update(replace(a.find_by_id("1"), first_name="FromA"))
    b.update(replace(stale, last_name="FromB"))
    final = a.find_by_id("1")
    assert final.last_name == "FromB"
    assert final.first_name == "F"


def test_concurrent_writers_on_one_file_never_fail(tmp_path):
    path = tmp_path / "users.json"
    errors = []

    def writer(prefix):
        store = JsonFileAccountStore(path)
        for i in range(100):
            try:
                store.create(_record(f"{prefix}{i}", f"{prefix}user{i}", f"{prefix}{i}@x.com"))
            except StorageError as e:
                errors.append(e)

    threads = [threading.Thread(target=writer, args=(p,)) for p in ("a", "b")]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    saved = JsonFileAccountStore(path).list()
    assert saved
    assert len({r.id for r in saved}) == len(saved)
    assert list(tmp_path.glob("*.tmp")) == []


def test_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileAccountStore(path).list()
    path.write_text('{"users": []}', encoding="utf-8")
    with pytest.raises(StorageError):
        JsonFileAccountStore(path).list()
