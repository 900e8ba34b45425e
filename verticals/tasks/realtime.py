"""Real-time task updates over WebSocket.

Clients connect to /ws?token=<bearer token>. Once accepted they receive
every global event (taskCreated, taskDeleted) and can opt into updates
for individual tasks:

    -> {"type": "joinTask", "taskId": "..."}
    -> {"type": "leaveTask", "taskId": "..."}
    <- {"event": "taskUpdate", "data": {...}}

A reader loop handles control messages while a writer loop drains the
subscriber queue; whichever ends first tears the connection down.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings, get_settings
from core.database import get_session_factory
from core.errors import UnauthorizedError
from core.realtime import Channel, Subscriber, get_channel
from patterns.access_policy import Principal
from verticals.accounts.repository import UserRepository
from verticals.accounts.service import IdentityService
from verticals.tasks.events import task_topic

logger = logging.getLogger(__name__)

router = APIRouter()

JOIN = "joinTask"
LEAVE = "leaveTask"


async def _read_controls(websocket: WebSocket, channel: Channel, subscriber: Subscriber) -> None:
    while True:
        message = await websocket.receive_json()
        kind = message.get("type") if isinstance(message, dict) else None
        task_id = message.get("taskId") if isinstance(message, dict) else None
        if kind not in (JOIN, LEAVE) or not task_id:
            await websocket.send_json({"event": "error", "data": {"message": "Unknown control message"}})
            continue

        topic = task_topic(str(task_id))
        if kind == JOIN:
            channel.subscribe(subscriber, topic)
            logger.info("Client %s joined task room: %s", subscriber.id, topic)
        else:
            channel.unsubscribe(subscriber, topic)
            logger.info("Client %s left task room: %s", subscriber.id, topic)


async def _authenticate(
    token: str | None,
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
) -> Principal:
    """Check the handshake token, holding a session only for the lookup."""
    async with session_factory() as session:
        return await IdentityService(UserRepository(session), settings.auth).verify(token)


async def _write_events(websocket: WebSocket, subscriber: Subscriber) -> None:
    while True:
        message = await subscriber.receive()
        await websocket.send_json(message.to_dict())


@router.websocket("/ws")
async def task_updates(
    websocket: WebSocket,
    channel: Channel = Depends(get_channel),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    token = websocket.query_params.get("token")
    try:
        principal = await _authenticate(token, session_factory, settings)
    except UnauthorizedError as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.message)
        return

    await websocket.accept()
    subscriber = channel.connect()
    logger.info("User %s connected as subscriber %s", principal.user_id, subscriber.id)

    reader = asyncio.create_task(_read_controls(websocket, channel, subscriber))
    writer = asyncio.create_task(_write_events(websocket, subscriber))
    try:
        done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Subscriber %s closed with error: %s", subscriber.id, exc)
    finally:
        for task in (reader, writer):
            task.cancel()
        await asyncio.gather(reader, writer, return_exceptions=True)
        channel.disconnect(subscriber)
