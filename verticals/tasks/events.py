"""Task lifecycle broadcasting.

Publishes to the injected Channel:
- taskCreated -> global topic, payload = task
- taskUpdate  -> "task-{id}", payload = full updated task
- taskDeleted -> global topic, payload = {"taskId": id}

Publishing is fire-and-forget. A failing channel is logged and never
propagates into the request that triggered the event.
"""
from __future__ import annotations
from enum import Enum
from typing import Any
import logging

from core.realtime import GLOBAL_TOPIC, Channel

logger = logging.getLogger(__name__)


class TaskEvent(str, Enum):
    """Event names seen by real-time clients."""
    CREATED = "taskCreated"
    UPDATED = "taskUpdate"
    DELETED = "taskDeleted"


def task_topic(task_id: str) -> str:
    return f"task-{task_id}"


class TaskBroadcaster:
    """Thin publisher over a Channel."""

    def __init__(self, channel: Channel):
        self.channel = channel

    async def _publish(self, topic: str, event: TaskEvent, payload: Any) -> int:
        try:
            delivered = await self.channel.publish(topic, event.value, payload)
        except Exception:
            logger.exception("Failed to publish %s on %s", event.value, topic)
            return 0
        logger.info("Emitted %s on %s to %d subscriber(s)", event.value, topic, delivered)
        return delivered

    async def task_created(self, task: dict[str, Any]) -> int:
        return await self._publish(GLOBAL_TOPIC, TaskEvent.CREATED, task)

    async def task_updated(self, task: dict[str, Any]) -> int:
        return await self._publish(task_topic(task["id"]), TaskEvent.UPDATED, task)

    async def task_deleted(self, task_id: str) -> int:
        return await self._publish(GLOBAL_TOPIC, TaskEvent.DELETED, {"taskId": task_id})
