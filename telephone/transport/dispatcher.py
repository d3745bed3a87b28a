# telephone/transport/dispatcher.py
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from telephone.domain.game.handlers import (
    handle_drawing_update,
    handle_start_game,
    handle_submit_drawing,
    handle_submit_guess,
    handle_submit_prompt,
)
from telephone.domain.lifecycle.handlers import handle_disconnect, handle_join, handle_leave
from telephone.transport.protocols import (
    IncomingMessage,
    InDrawingUpdate,
    InJoinRoom,
    InLeaveRoom,
    InStartGame,
    InSubmitDrawing,
    InSubmitGuess,
    InSubmitPrompt,
    OutError,
    dump_events,
    parse_incoming,
)
from telephone.transport.ws_manager import Session

logger = logging.getLogger(__name__)

DispatchResult = Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]
# (to_sender_events, to_room_events), each event is JSON dict

_ROUTES = {
    InJoinRoom: handle_join,
    InLeaveRoom: handle_leave,
    InStartGame: handle_start_game,
    InDrawingUpdate: handle_drawing_update,
    InSubmitPrompt: handle_submit_prompt,
    InSubmitDrawing: handle_submit_drawing,
    InSubmitGuess: handle_submit_guess,
}


async def dispatch_message(*, app, session: Session, msg: IncomingMessage) -> DispatchResult:
    """
    Route a validated message to its domain handler.
    Returns (to_sender, to_room) events as JSON dicts.

    NOTE: no store key usage and no game rules in here.
    """
    handler = _ROUTES.get(type(msg))
    if handler is None:
        err = OutError(code="BAD_MESSAGE", message=f"Unsupported message type: {msg.type}")
        return dump_events([err]), []

    try:
        to_sender, to_room = await handler(app=app, session=session, msg=msg)
    except Exception:
        logger.exception("handler failed type=%s conn=%s room=%s", msg.type, session.conn_id, session.room_id)
        return dump_events([OutError(code="INTERNAL", message="Internal server error")]), []

    return dump_events(to_sender), dump_events(to_room)


async def _room_key(app, session: Session, msg: IncomingMessage) -> Optional[str]:
    """
    Room whose lock serializes this message. None means there is nothing to
    lock (unknown join code, or a room the connection is not bound to) and
    the handler will reject the message on its own.
    """
    if isinstance(msg, InJoinRoom):
        room = await app.state.repo.get_room_by_code(msg.data.roomCode)
        return room.id if room is not None else None
    room_id = msg.data.roomId
    if session.room_id != room_id:
        return None
    return room_id


async def handle_inbound(*, app, conn_id: str, raw: Any) -> None:
    """
    Transport entry point for one client frame: parse, lock the room, run
    the handler and deliver its events before the lock is released.
    """
    wsman = app.state.wsman

    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        logger.debug("bad message conn=%s: %s", conn_id, e)
        await wsman.send(conn_id, OutError(code="BAD_MESSAGE", message="Invalid message").model_dump())
        return

    session = await wsman.session(conn_id)
    room_id = await _room_key(app, session, msg)

    if room_id is None:
        to_sender, to_room = await dispatch_message(app=app, session=session, msg=msg)
        for e in to_sender:
            await wsman.send(conn_id, e)
        await wsman.deliver(session.room_id, to_room, exclude_conn_id=conn_id)
        return

    async with app.state.locks.lock_for(room_id):
        # re-read: the binding may have changed while waiting for the lock
        session = await wsman.session(conn_id)
        to_sender, to_room = await dispatch_message(app=app, session=session, msg=msg)
        for e in to_sender:
            await wsman.send(conn_id, e)
        await wsman.deliver(room_id, to_room, exclude_conn_id=conn_id)


async def handle_connection_closed(*, app, conn_id: str) -> None:
    """Forget the connection and let the room react to the departure."""
    session = await app.state.wsman.remove(conn_id)
    if session is None or not session.room_id:
        return

    async with app.state.locks.lock_for(session.room_id):
        try:
            _, to_room = await handle_disconnect(app=app, session=session)
        except Exception:
            logger.exception("disconnect handling failed conn=%s room=%s", conn_id, session.room_id)
            return
        await app.state.wsman.deliver(session.room_id, dump_events(to_room))
