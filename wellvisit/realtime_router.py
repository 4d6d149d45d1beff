"""WebSocket endpoint that streams change-feed events to signed-in clients"""

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi import status as ws_status

from .auth import is_staff, resolve_user_from_token
from .database import SessionLocal
from .models import User
from .realtime import STAFF_CHANNEL, change_feed, doctor_channel, user_channel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])


def channels_for(user: User) -> list[str]:
    """Channels a user is allowed to listen on"""
    channels = [user_channel(user.id)]
    if user.doctor is not None:
        channels.append(doctor_channel(user.doctor.id))
    if is_staff(user):
        channels.append(STAFF_CHANNEL)
    return channels


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query("")):
    db = SessionLocal()
    try:
        user = resolve_user_from_token(db, token) if token else None
        channels = channels_for(user) if user else []
    finally:
        db.close()

    if not user:
        logger.warning("🚫 Realtime connection rejected: invalid token")
        await websocket.close(code=ws_status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    queue = change_feed.subscribe(channels)
    logger.info(f"📡 User {user.id} connected to realtime ({', '.join(channels)})")

    async def forward_events():
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    async def read_keepalives():
        # Client messages are only keep-alives, reading them is how a disconnect is noticed
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info(f"📴 User {user.id} disconnected from realtime")

    await websocket.send_json({"event": "SUBSCRIBED", "channels": channels})
    tasks = {asyncio.create_task(forward_events()), asyncio.create_task(read_keepalives())}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.warning(f"⚠️ Realtime connection for user {user.id} dropped: {task.exception()}")
    finally:
        for task in tasks:
            task.cancel()
        change_feed.unsubscribe(queue, channels)
