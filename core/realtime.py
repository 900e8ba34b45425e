"""
Taskboard publish/subscribe channel.

Topic-based fan-out to connected subscribers:
- Every subscriber is joined to the global topic on connect
- Subscribers join/leave further topics explicitly
- Each subscriber owns a bounded queue; a full queue drops the event
- Fire-and-forget, at-most-once, no persistence or replay

The Channel protocol is what the rest of the app depends on, so a
broker-backed implementation can replace InMemoryChannel without touching
publishers.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol
import asyncio
import logging
import uuid

from starlette.requests import HTTPConnection

logger = logging.getLogger(__name__)

GLOBAL_TOPIC = "tasks"


@dataclass
class ChannelMessage:
    """One event delivered to a subscriber."""
    topic: str
    event: str
    payload: Any
    published_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.event, "data": self.payload}


@dataclass(eq=False)
class Subscriber:
    """A connected listener with its own delivery queue."""
    queue: asyncio.Queue
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    topics: set[str] = field(default_factory=set)

    async def receive(self) -> ChannelMessage:
        return await self.queue.get()


class Channel(Protocol):
    """Publish/subscribe interface used by publishers and transports."""

    def connect(self) -> Subscriber: ...

    def disconnect(self, subscriber: Subscriber) -> None: ...

    def subscribe(self, subscriber: Subscriber, topic: str) -> None: ...

    def unsubscribe(self, subscriber: Subscriber, topic: str) -> None: ...

    async def publish(self, topic: str, event: str, payload: Any) -> int: ...


class InMemoryChannel:
    """Single-process channel backed by asyncio queues."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._topics: dict[str, set[Subscriber]] = {}

    # -- Membership --

    def connect(self) -> Subscriber:
        subscriber = Subscriber(queue=asyncio.Queue(maxsize=self.max_queue_size))
        self.subscribe(subscriber, GLOBAL_TOPIC)
        logger.info("Subscriber %s connected", subscriber.id)
        return subscriber

    def disconnect(self, subscriber: Subscriber) -> None:
        for topic in list(subscriber.topics):
            self.unsubscribe(subscriber, topic)
        logger.info("Subscriber %s disconnected", subscriber.id)

    def subscribe(self, subscriber: Subscriber, topic: str) -> None:
        self._topics.setdefault(topic, set()).add(subscriber)
        subscriber.topics.add(topic)
        logger.debug("Subscriber %s joined %s", subscriber.id, topic)

    def unsubscribe(self, subscriber: Subscriber, topic: str) -> None:
        members = self._topics.get(topic)
        if members is not None:
            members.discard(subscriber)
            if not members:
                del self._topics[topic]
        subscriber.topics.discard(topic)
        logger.debug("Subscriber %s left %s", subscriber.id, topic)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    # -- Delivery --

    async def publish(self, topic: str, event: str, payload: Any) -> int:
        """Deliver to current members of topic. Returns the delivery count."""
        message = ChannelMessage(topic=topic, event=event, payload=payload)
        delivered = 0
        for subscriber in list(self._topics.get(topic, ())):
            try:
                subscriber.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping %s for subscriber %s: queue full", event, subscriber.id
                )
        return delivered


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------

def get_channel(connection: HTTPConnection) -> Channel:
    """The channel installed on app.state (works for HTTP and WebSocket)."""
    return connection.app.state.channel
