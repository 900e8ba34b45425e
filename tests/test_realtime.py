"""Test the pub/sub channel, task broadcaster and WebSocket control loop."""
import pytest
from fastapi import WebSocketDisconnect

from core.realtime import GLOBAL_TOPIC, InMemoryChannel
from verticals.tasks.events import TaskBroadcaster, task_topic
from verticals.tasks.realtime import _read_controls


@pytest.mark.asyncio
async def test_connect_joins_global_topic():
    channel = InMemoryChannel()
    sub = channel.connect()
    assert GLOBAL_TOPIC in sub.topics
    delivered = await channel.publish(GLOBAL_TOPIC, "taskCreated", {"id": "1"})
    assert delivered == 1
    msg = await sub.receive()
    assert msg.to_dict() == {"event": "taskCreated", "data": {"id": "1"}}


@pytest.mark.asyncio
async def test_topic_isolation():
    channel = InMemoryChannel()
    watcher = channel.connect()
    bystander = channel.connect()
    channel.subscribe(watcher, "task-1")

    await channel.publish("task-1", "taskUpdate", {"id": "1"})
    assert watcher.queue.qsize() == 1
    assert bystander.queue.qsize() == 0


@pytest.mark.asyncio
async def test_leave_and_disconnect():
    channel = InMemoryChannel()
    sub = channel.connect()
    channel.subscribe(sub, "task-1")
    channel.unsubscribe(sub, "task-1")
    assert await channel.publish("task-1", "taskUpdate", {}) == 0

    channel.disconnect(sub)
    assert channel.subscriber_count(GLOBAL_TOPIC) == 0
    assert await channel.publish(GLOBAL_TOPIC, "taskCreated", {}) == 0


@pytest.mark.asyncio
async def test_full_queue_drops_event():
    channel = InMemoryChannel(max_queue_size=1)
    sub = channel.connect()
    assert await channel.publish(GLOBAL_TOPIC, "taskCreated", {"n": 1}) == 1
    assert await channel.publish(GLOBAL_TOPIC, "taskCreated", {"n": 2}) == 0
    assert (await sub.receive()).payload == {"n": 1}


@pytest.mark.asyncio
async def test_broadcaster_topics_and_payloads():
    channel = InMemoryChannel()
    global_sub = channel.connect()
    task_sub = channel.connect()
    channel.unsubscribe(task_sub, GLOBAL_TOPIC)
    channel.subscribe(task_sub, task_topic("42"))

    broadcaster = TaskBroadcaster(channel)
    await broadcaster.task_created({"id": "42", "title": "New"})
    await broadcaster.task_updated({"id": "42", "title": "Changed"})
    await broadcaster.task_deleted("42")

    created = await global_sub.receive()
    deleted = await global_sub.receive()
    assert created.event == "taskCreated"
    assert deleted.event == "taskDeleted"
    assert deleted.payload == {"taskId": "42"}

    updated = await task_sub.receive()
    assert updated.event == "taskUpdate"
    assert updated.payload["title"] == "Changed"
    assert task_sub.queue.empty()


class _BrokenChannel:
    async def publish(self, topic, event, payload):
        raise RuntimeError("transport down")


@pytest.mark.asyncio
async def test_broadcaster_swallows_publish_failure(caplog):
    broadcaster = TaskBroadcaster(_BrokenChannel())
    assert await broadcaster.task_deleted("42") == 0
    assert "Failed to publish taskDeleted" in caplog.text


class _FakeWebSocket:
    def __init__(self, messages):
        self.messages = list(messages)
        self.sent = []

    async def receive_json(self):
        if not self.messages:
            raise WebSocketDisconnect()
        return self.messages.pop(0)

    async def send_json(self, data):
        self.sent.append(data)


@pytest.mark.asyncio
async def test_control_messages_join_and_leave():
    channel = InMemoryChannel()
    sub = channel.connect()
    ws = _FakeWebSocket([
        {"type": "joinTask", "taskId": "7"},
        {"type": "joinTask", "taskId": "8"},
        {"type": "leaveTask", "taskId": "7"},
        {"type": "dance"},
    ])

    with pytest.raises(WebSocketDisconnect):
        await _read_controls(ws, channel, sub)

    assert "task-8" in sub.topics
    assert "task-7" not in sub.topics
    assert ws.sent == [{"event": "error", "data": {"message": "Unknown control message"}}]
