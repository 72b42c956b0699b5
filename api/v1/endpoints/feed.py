from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from api.v1.deps import get_feed, get_lifecycle_manager
from models.appointment import Appointment
from models.caller import Caller
from schemas.public import AppointmentDisplay
from services.feed import AppointmentFeed
from services.lifecycle import LifecycleManager
from services.security import decode_caller


router = APIRouter(tags=["feed"])
logger = logging.getLogger(__name__)


def _visible(snapshot: List[Appointment], caller: Caller) -> list[dict]:
    items = snapshot if caller.is_admin else [a for a in snapshot if a.owner_id == caller.id]
    return [AppointmentDisplay.from_model(a).model_dump(mode="json") for a in items]


def latest_only(queue: asyncio.Queue) -> Callable[[List[Appointment]], None]:
    """Subscriber that keeps only the newest snapshot queued for a slow client."""

    def offer(snapshot: List[Appointment]) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(snapshot)

    return offer


async def _close_quietly(websocket: WebSocket) -> None:
    if websocket.application_state != WebSocketState.CONNECTED:
        return
    if websocket.client_state != WebSocketState.CONNECTED:
        return
    try:
        await websocket.close()
    except RuntimeError:
        # Peer went away between the state check and the close frame
        pass


@router.websocket("/appointments/feed")
async def appointments_feed(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    client_id: Optional[str] = Query(default=None),
    feed: AppointmentFeed = Depends(get_feed),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> None:
    try:
        if token:
            caller = decode_caller(token)
        elif client_id and client_id.strip():
            caller = Caller(id=client_id.strip())
        else:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    queue: asyncio.Queue[List[Appointment]] = asyncio.Queue(maxsize=1)
    unsubscribe = feed.subscribe(latest_only(queue))
    logger.info("feed.client_connected", extra={"caller_id": caller.id, "is_admin": caller.is_admin})

    async def pump() -> None:
        await websocket.send_json(_visible(await manager.list_for(caller), caller))
        while True:
            snapshot = await queue.get()
            await websocket.send_json(_visible(snapshot, caller))

    async def drain() -> None:
        # Client messages are ignored; receiving is how a disconnect shows up
        while True:
            await websocket.receive_text()

    sender = asyncio.create_task(pump())
    receiver = asyncio.create_task(drain())
    try:
        done, pending = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error("feed.client_error", extra={"caller_id": caller.id, "error": repr(exc)})
    finally:
        for task in (sender, receiver):
            task.cancel()
        unsubscribe()
        await _close_quietly(websocket)
        logger.info("feed.client_disconnected", extra={"caller_id": caller.id})
