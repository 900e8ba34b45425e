"""Test the /ws endpoint against the real app, database and channel."""
import asyncio
import dataclasses
import logging
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.websockets import WebSocketDisconnect

from api.main import app
from core.config import get_settings
from core.database import get_session, get_session_factory, init_db, session_scope
from core.realtime import GLOBAL_TOPIC, InMemoryChannel
from core.security import create_access_token

UNKNOWN_CONTROL = {"event": "error", "data": {"message": "Unknown control message"}}


class _CheckoutCounter:
    """Connections currently checked out of the engine's pool."""

    def __init__(self, engine):
        self.open = 0
        event.listen(engine.sync_engine, "checkout", self._checkout)
        event.listen(engine.sync_engine, "checkin", self._checkin)

    def _checkout(self, *args):
        self.open += 1

    def _checkin(self, *args):
        self.open -= 1


@pytest.fixture()
def live(tmp_path, settings, monkeypatch):
    """Run the app lifespan with a file database shared by HTTP and /ws."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}", poolclass=NullPool)
    asyncio.run(init_db(engine))
    factory = async_sessionmaker(engine, expire_on_commit=False)
    connections = _CheckoutCounter(engine)

    async def override_session():
        async with session_scope(factory) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_settings] = lambda: settings
    channel = InMemoryChannel()
    app.state.channel = channel
    monkeypatch.setattr("api.main.settings", dataclasses.replace(settings, auto_create_tables=False))

    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    try:
        with TestClient(app) as client:
            yield client, channel, connections
    finally:
        for handler in list(root.handlers):
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)
        logging.captureWarnings(False)
        app.dependency_overrides.clear()
        app.state.channel = InMemoryChannel()
        asyncio.run(engine.dispose())


def _register(client, name, email):
    resp = client.post(
        "/api/auth/register", json={"name": name, "email": email, "password": "password123"}
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    body["headers"] = {"Authorization": f"Bearer {body['token']}"}
    return body


def _create(client, user, title):
    resp = client.post(
        "/api/tasks",
        headers=user["headers"],
        data={
            "title": title,
            "description": "Realtime",
            "dueDate": "2030-01-01T00:00:00Z",
            "assignedTo": user["id"],
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def _settle(ws):
    """Replies arrive in order, so earlier control messages are handled once this returns."""
    ws.send_json({"type": "bogus"})
    assert ws.receive_json() == UNKNOWN_CONTROL


def test_rejects_missing_or_bad_token(live):
    client, channel, _ = live
    for url in ("/ws", "/ws?token=bad"):
        with pytest.raises(WebSocketDisconnect) as info:
            with client.websocket_connect(url):
                pass
        assert info.value.code == 1008
    assert channel.subscriber_count(GLOBAL_TOPIC) == 0


def test_rejects_token_of_unknown_user(live, settings):
    client, channel, _ = live
    token = create_access_token(str(uuid.uuid4()), "user", settings.auth.token_secret)
    with pytest.raises(WebSocketDisconnect) as info:
        with client.websocket_connect(f"/ws?token={token}"):
            pass
    assert info.value.code == 1008
    assert channel.subscriber_count(GLOBAL_TOPIC) == 0


def test_join_leave_and_unknown_messages(live):
    client, channel, _ = live
    user = _register(client, "Alice", "alice@example.com")
    with client.websocket_connect(f"/ws?token={user['token']}") as ws:
        ws.send_json({"type": "joinTask", "taskId": "abc"})
        _settle(ws)
        assert channel.subscriber_count(GLOBAL_TOPIC) == 1
        assert channel.subscriber_count("task-abc") == 1

        ws.send_json({"type": "leaveTask", "taskId": "abc"})
        ws.send_json({"type": "joinTask"})
        assert ws.receive_json() == UNKNOWN_CONTROL
        assert channel.subscriber_count("task-abc") == 0

    assert channel.subscriber_count(GLOBAL_TOPIC) == 0


def test_connected_client_receives_task_events(live):
    client, channel, connections = live
    user = _register(client, "Alice", "alice@example.com")
    task = _create(client, user, "Watched")

    with client.websocket_connect(f"/ws?token={user['token']}") as ws:
        ws.send_json({"type": "joinTask", "taskId": task["id"]})
        _settle(ws)
        # The handshake lookup has returned its connection.
        assert connections.open == 0

        resp = client.put(f"/api/tasks/{task['id']}", headers=user["headers"], data={"title": "Renamed"})
        assert resp.status_code == 200
        frame = ws.receive_json()
        assert frame["event"] == "taskUpdate"
        assert frame["data"]["id"] == task["id"]
        assert frame["data"]["title"] == "Renamed"

        other = _create(client, user, "Fresh")
        frame = ws.receive_json()
        assert frame["event"] == "taskCreated"
        assert frame["data"]["id"] == other["id"]
        assert frame["data"]["title"] == "Fresh"

        resp = client.delete(f"/api/tasks/{other['id']}", headers=user["headers"])
        assert resp.status_code == 200
        assert ws.receive_json() == {"event": "taskDeleted", "data": {"taskId": other["id"]}}

        assert connections.open == 0

    assert channel.subscriber_count(GLOBAL_TOPIC) == 0
