# telephone/domain/game/handlers_draw.py
from __future__ import annotations

from typing import List, Tuple

from telephone.transport.protocols import InDrawingUpdate, OutDrawingUpdated, OutError
from telephone.transport.ws_manager import Session

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_drawing_update(*, app, session: Session, msg: InDrawingUpdate) -> Result:
    """
    Live canvas relay. Nothing is stored; the room just sees the stroke state.
    """
    if not session.player_id or session.room_id != msg.data.roomId:
        return [OutError(code="UNAUTHORIZED", message="Not a member of this room")], []

    room = await app.state.repo.get_room(msg.data.roomId)
    if room is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found")], []

    return [], [OutDrawingUpdated(data={"playerId": session.player_id, "canvasData": msg.data.canvasData})]
