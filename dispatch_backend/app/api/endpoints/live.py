"""
Live Updates WebSocket - dashboard change feed.

Dispatchers and admins subscribe here to receive trip and driver change
notifications as they are published to Redis.
"""

import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch_backend.app.db.session import get_db
from dispatch_backend.app.core.dependencies import identity_from_token, resolve_caller
from dispatch_backend.app.core.exceptions import AppException
from dispatch_backend.app.core.guards import DISPATCH_ROLES
from dispatch_backend.app.core.redis_client import get_redis
from dispatch_backend.app.services.realtime import TRIPS_CHANNEL, DRIVERS_CHANNEL

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live Updates"])


async def _forward_messages(websocket: WebSocket, pubsub) -> None:
    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue
        await websocket.send_text(message["data"])


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until the socket closes; dashboards send nothing we use."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/live")
async def live_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """
    Stream trip and driver change notifications (Dispatcher/Admin only).

    Browsers cannot set headers on WebSocket requests, so the bearer token
    is passed as the ``token`` query parameter.
    """
    try:
        caller = await resolve_caller(db, identity_from_token(token))
    except AppException as e:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return
    finally:
        # The stream can stay open for hours; it must not hold a pooled connection
        await db.close()

    if caller.role not in DISPATCH_ROLES:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Forbidden")
        return

    await websocket.accept()

    pubsub = redis.pubsub()
    await pubsub.subscribe(TRIPS_CHANNEL, DRIVERS_CHANNEL)
    logger.info("Live feed opened for %s", caller.uid)

    forward_task = asyncio.create_task(_forward_messages(websocket, pubsub))
    disconnect_task = asyncio.create_task(_wait_for_disconnect(websocket))

    try:
        done, _ = await asyncio.wait(
            {forward_task, disconnect_task},
            return_when=asyncio.FIRST_COMPLETED
        )
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error
    finally:
        for task in (forward_task, disconnect_task):
            task.cancel()
        await asyncio.gather(forward_task, disconnect_task, return_exceptions=True)

        await pubsub.unsubscribe()
        await pubsub.aclose()
        logger.info("Live feed closed for %s", caller.uid)
