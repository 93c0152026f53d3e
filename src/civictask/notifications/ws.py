"""WebSocket delivery of a worker's issue events.

Each connection subscribes to the worker's own ``ws:worker:{uid}`` Redis
channel and forwards every published event as

    {"type": "<event>", "payload": {...}}

Clients may send ``{"action": "ping"}`` and get ``{"type": "pong"}`` back.
"""

from __future__ import annotations

import asyncio
import contextlib
import json

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from civictask.auth.jwt import actor_from_claims, verify_token
from civictask.notifications.push import worker_channel
from civictask.redis_client import get_redis_or_none

logger = structlog.get_logger()

router = APIRouter()


async def forward_events(websocket: WebSocket, pubsub: object) -> None:
    """Relay pub/sub messages to the socket until cancelled."""
    while True:
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)  # type: ignore[attr-defined]
        if message is None:
            continue
        data = message.get("data", "")
        if isinstance(data, bytes):
            data = data.decode()
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, TypeError):
            logger.warning("ws_invalid_event", channel=message.get("channel"))
            continue
        await websocket.send_json({
            "type": payload.get("event", "notification"),
            "payload": payload.get("data", payload),
        })


@router.websocket("/ws")
async def worker_events(websocket: WebSocket, token: str = Query(...)) -> None:
    try:
        actor = actor_from_claims(verify_token(token))
    except jwt.InvalidTokenError as e:
        await websocket.close(code=4001, reason=f"Authentication failed: {e}")
        return

    redis = get_redis_or_none()
    if redis is None:
        await websocket.close(code=1011, reason="Event delivery unavailable")
        return

    await websocket.accept()
    channel = worker_channel(actor.uid)
    pubsub = redis.pubsub()
    await pubsub.subscribe(channel)
    forwarder = asyncio.create_task(forward_events(websocket, pubsub))
    logger.info("ws_connected", worker_id=actor.uid, channel=channel)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue
            if msg.get("action") == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                await websocket.send_json({"type": "error", "message": f"Unknown action: {msg.get('action')}"})
    except WebSocketDisconnect:
        pass
    finally:
        forwarder.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await forwarder
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
        logger.info("ws_disconnected", worker_id=actor.uid)
