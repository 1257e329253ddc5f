"""
One store connection per authorized request, always released.

The notes handler must open the store only after the caller is known and
close it on every exit path: success, validation failure, store failure
and unexpected errors.
"""
import uuid

import pytest
from fastapi.testclient import TestClient

from ngotes.storage.notes_store import NotesStore, StoreError


@pytest.fixture()
def connections(monkeypatch):
    calls = {"connect": 0, "close": 0}
    real_connect = NotesStore.connect
    real_close = NotesStore.close

    def connect(self):
        calls["connect"] += 1
        return real_connect(self)

    def close(self):
        calls["close"] += 1
        return real_close(self)

    monkeypatch.setattr(NotesStore, "connect", connect)
    monkeypatch.setattr(NotesStore, "close", close)
    return calls


def test_unauthenticated_request_never_connects(client, connections):
    for method in ("GET", "POST"):
        r = client.request(method, "/notes", json={"title": "x"} if method == "POST" else None)
        assert r.status_code == 401
    r = client.delete(f"/notes/{uuid.uuid4()}")
    assert r.status_code == 401
    # unsupported verbs are still refused as unauthenticated first
    r = client.patch("/notes", json={"title": "x"})
    assert r.status_code == 401
    assert r.json()["message"] == "No authorization token provided"
    r = client.get(f"/notes/{uuid.uuid4()}", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert connections == {"connect": 0, "close": 0}


def test_connection_closed_after_success(client, auth_headers, connections):
    r = client.get("/notes", headers=auth_headers("userA"))
    assert r.status_code == 200
    assert connections == {"connect": 1, "close": 1}


def test_connection_closed_after_validation_failure(client, auth_headers, connections):
    r = client.post("/notes", headers=auth_headers("userA"), json={"content": "no title"})
    assert r.status_code == 400
    assert connections == {"connect": 1, "close": 1}


def test_connection_closed_after_store_failure(client, auth_headers, connections, monkeypatch):
    def broken_insert(self, *args, **kwargs):
        raise StoreError("disk full at /secret/path")

    monkeypatch.setattr(NotesStore, "insert_one", broken_insert)

    r = client.post("/notes", headers=auth_headers("userA"), json={"title": "t"})
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == 0
    assert body["message"] == "Note store operation failed"
    assert "secret" not in r.text
    assert connections == {"connect": 1, "close": 1}


def test_connection_closed_after_unexpected_error(auth_headers, connections, monkeypatch):
    from ngotes.main import app

    def exploding_find(self, *args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(NotesStore, "find", exploding_find)

    client = TestClient(app)
    r = client.get("/notes", headers=auth_headers("userA"))
    assert r.status_code == 400
    body = r.json()
    assert body["status"] == 0
    assert body["user_id"] == "userA"
    assert "timestamp" in body
    assert body["message"] == "Note request failed"
    assert "boom" not in r.text
    assert connections == {"connect": 1, "close": 1}


def test_closed_store_refuses_operations(data_dir):
    store = NotesStore(data_dir / "db")
    with pytest.raises(StoreError):
        store.find("userA")

    with store:
        assert store.connected
        store.insert_one("userA", "t", "", False, timestamp=1)
    assert not store.connected
    with pytest.raises(StoreError):
        store.count()


def test_missing_secret_still_answers_with_envelope(client, auth_headers, connections, monkeypatch):
    headers = auth_headers("userA")
    monkeypatch.delenv("JWT_SECRET")

    r = client.get("/notes", headers=headers)
    assert r.status_code == 400
    assert r.json()["status"] == 0
    assert "JWT_SECRET" not in r.text
    assert connections == {"connect": 0, "close": 0}
