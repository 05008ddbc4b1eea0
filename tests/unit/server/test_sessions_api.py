import asyncio
import sqlite3

import pytest
from fastapi.testclient import TestClient

from src.server.session.dependencies import set_session_store
from src.server.session.store import SQLiteSessionStore


@pytest.fixture
def api_db(tmp_path):
    connection = sqlite3.connect(str(tmp_path / "sessions_api.db"), check_same_thread=False)
    yield connection
    connection.close()


@pytest.fixture
def client(api_db):
    store = SQLiteSessionStore(api_db)
    set_session_store(store)

    from src.server.app import app

    with TestClient(app) as test_client:
        yield test_client

    asyncio.run(store.close())
    set_session_store(None)


def test_session_crud_flow(client: TestClient):
    session = {"cookie": {"maxAge": 60000}, "user": "alice"}
    response = client.put("/api/sessions/s1", json=session)
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = client.get("/api/sessions/s1")
    assert response.status_code == 200
    assert response.json() == session

    response = client.get("/api/sessions")
    assert response.status_code == 200
    assert response.json()["sessions"] == [session]

    response = client.get("/api/sessions", params={"count_only": "true"})
    assert response.status_code == 200
    assert response.json()["count"] == 1

    response = client.delete("/api/sessions/s1")
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = client.get("/api/sessions/s1")
    assert response.status_code == 404


def test_clear_removes_every_session(client: TestClient):
    for session_id in ("a", "b", "c"):
        client.put(f"/api/sessions/{session_id}", json={"user": session_id})
    assert client.get("/api/sessions", params={"count_only": "true"}).json()["count"] == 3

    response = client.delete("/api/sessions")
    assert response.status_code == 200
    assert client.get("/api/sessions", params={"count_only": "true"}).json()["count"] == 0


def test_touch_with_past_expiry_expires_session(client: TestClient):
    client.put("/api/sessions/s1", json={"cookie": {"maxAge": 60000}})

    response = client.post("/api/sessions/s1/touch", json={"user": "no cookie"})
    assert response.status_code == 200
    assert client.get("/api/sessions/s1").status_code == 200

    response = client.post(
        "/api/sessions/s1/touch", json={"cookie": {"expires": "2000-01-01T00:00:00Z"}}
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get("/api/sessions/s1").status_code == 404


def test_session_payload_is_stored_as_sent(client: TestClient):
    session = {
        "cookie": {"expires": "2030-01-01T00:00:00.000Z", "maxAge": "5000", "httpOnly": True},
        "cart": [1, 2],
    }
    response = client.put("/api/sessions/s1", json=session)
    assert response.status_code == 200

    assert client.get("/api/sessions/s1").json() == session


def test_session_named_count_is_reachable(client: TestClient):
    client.put("/api/sessions/count", json={"user": "counted"})

    response = client.get("/api/sessions/count")
    assert response.status_code == 200
    assert response.json() == {"user": "counted"}

    listing = client.get("/api/sessions").json()
    assert listing["count"] == 1
    assert listing["sessions"] == [{"user": "counted"}]


def test_store_failures_map_to_internal_error(client: TestClient, api_db):
    api_db.execute("DROP TABLE server_sessions")
    api_db.commit()

    response = client.get("/api/sessions")
    assert response.status_code == 500
    assert response.json()["detail"] == "Internal Server Error"


def test_health(client: TestClient):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_shutdown_leaves_caller_connection_open(api_db):
    store = SQLiteSessionStore(api_db)
    set_session_store(store)

    from src.server.app import app

    with TestClient(app) as test_client:
        assert test_client.put("/api/sessions/s1", json={"user": "a"}).status_code == 200

    assert api_db.execute("SELECT COUNT(*) FROM server_sessions").fetchone()[0] == 1
