from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Awaitable

from fastapi import APIRouter, WebSocket
from starlette.websockets import WebSocketState

from app.dependencies import get_logs_streamer, get_stats_streamer
from app.schemas.metrics import DerivedMetrics
from app.services.connections import get_connection_manager
from app.validators import ValidationError, validate_container_id


logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

POLICY_VIOLATION = 1008


@router.websocket("/api/stats/{container_id}")
async def stats_websocket(websocket: WebSocket, container_id: str):
    """Stream live metrics for one container as JSON frames."""
    try:
        container_id = validate_container_id(container_id)
    except ValidationError as e:
        await websocket.close(code=POLICY_VIOLATION, reason=str(e))
        return

    manager = get_connection_manager()
    streamer = get_stats_streamer()
    await manager.connect(websocket, "stats")

    async def deliver(metrics: DerivedMetrics) -> None:
        await websocket.send_json(metrics.model_dump(mode="json"))

    try:
        await run_until_disconnect(websocket, streamer.stream_one(container_id, deliver))
    except Exception as e:
        # client disconnects and feed errors both end up here
        logger.debug("Stats stream for %s ended: %s", container_id, e)
    finally:
        await manager.disconnect(websocket, "stats")
        await close_quietly(websocket)


@router.websocket("/api/logs/{container_id}")
async def logs_websocket(websocket: WebSocket, container_id: str):
    """Follow container logs as text frames."""
    try:
        container_id = validate_container_id(container_id)
    except ValidationError as e:
        await websocket.close(code=POLICY_VIOLATION, reason=str(e))
        return

    manager = get_connection_manager()
    streamer = get_logs_streamer()
    await manager.connect(websocket, "logs")
    logger.info("Logs stream requested for %s", container_id)

    async def deliver(text: str) -> None:
        await websocket.send_text(text)

    try:
        await run_until_disconnect(websocket, streamer.stream_logs(container_id, deliver))
    except Exception as e:
        logger.debug("Logs stream for %s ended: %s", container_id, e)
        if websocket.client_state == WebSocketState.CONNECTED:
            await manager.send_personal(websocket, {"error": str(e)})
    finally:
        await manager.disconnect(websocket, "logs")
        await close_quietly(websocket)


async def run_until_disconnect(websocket: WebSocket, stream: Awaitable[None]) -> bool:
    """Run ``stream`` until it finishes or the client goes away.

    Returns True when the client disconnected first, in which case the stream
    is cancelled. Errors raised by the stream propagate.
    """
    stream_task = asyncio.ensure_future(stream)
    watch_task = asyncio.create_task(wait_for_disconnect(websocket))

    try:
        done, _ = await asyncio.wait({stream_task, watch_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (stream_task, watch_task):
            task.cancel()

    if stream_task in done:
        with suppress(asyncio.CancelledError):
            await watch_task
        stream_task.result()
        return False

    with suppress(asyncio.CancelledError):
        await stream_task
    return True


async def wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain client frames until the peer closes the connection."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def close_quietly(websocket: WebSocket) -> None:
    if websocket.application_state == WebSocketState.DISCONNECTED:
        return
    if websocket.client_state == WebSocketState.DISCONNECTED:
        return
    with suppress(RuntimeError):
        await websocket.close()
