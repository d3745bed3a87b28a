# telephone/transport/ws.py
from __future__ import annotations

import ipaddress
import json
import logging
import uuid
from urllib.parse import urlparse

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from telephone.settings import Settings
from telephone.transport.dispatcher import handle_connection_closed, handle_inbound
from telephone.transport.protocols import OutError

logger = logging.getLogger(__name__)

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


def origin_allowed(origin: str | None, settings: Settings) -> bool:
    if origin is None:
        return True
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}
    if origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        o = urlparse(origin)
        if _is_private_ip(o.hostname or "") and o.port == 5173:
            return True
    return False


async def _check_origin_or_close(websocket: WebSocket) -> bool:
    if origin_allowed(websocket.headers.get("origin"), websocket.app.state.settings):
        return True
    logger.info("rejected websocket origin=%s", websocket.headers.get("origin"))
    await websocket.close(code=1008)
    return False


async def _send_bad_message(websocket: WebSocket) -> None:
    await websocket.send_json(OutError(code="BAD_MESSAGE", message="Invalid message").model_dump())


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
    if not await _check_origin_or_close(websocket):
        return

    await websocket.accept()

    app = websocket.app
    conn_id = uuid.uuid4().hex
    await app.state.wsman.add(conn_id, websocket)
    logger.debug("connection opened conn=%s", conn_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            # binary frames carry "bytes" instead of "text"
            text = message.get("text")
            if text is None:
                await _send_bad_message(websocket)
                continue
            try:
                raw = json.loads(text)
            except json.JSONDecodeError:
                await _send_bad_message(websocket)
                continue
            await handle_inbound(app=app, conn_id=conn_id, raw=raw)

    except WebSocketDisconnect:
        logger.debug("connection closed conn=%s", conn_id)

    finally:
        await handle_connection_closed(app=app, conn_id=conn_id)
