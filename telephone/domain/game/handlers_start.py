# telephone/domain/game/handlers_start.py
from __future__ import annotations

import logging
from typing import List, Tuple

from telephone.domain.common.snapshot import room_public
from telephone.domain.common.validation import is_host
from telephone.domain.game.handlers_phase import start_phase_timer, task_events
from telephone.store.models import GamePhase, PlayerStatus
from telephone.transport.protocols import InStartGame, OutError, OutGameStarted
from telephone.transport.ws_manager import Session
from telephone.util.timeutil import now_ms

logger = logging.getLogger(__name__)

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def handle_start_game(*, app, session: Session, msg: InStartGame) -> Result:
    repo = app.state.repo
    room_id = msg.data.roomId

    if not session.player_id or session.room_id != room_id:
        return [OutError(code="UNAUTHORIZED", message="Not a member of this room")], []

    room = await repo.get_room(room_id)
    if room is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found")], []

    if not is_host(room.find_player(session.player_id), room):
        return [OutError(code="NOT_HOST", message="Only host can start game")], []

    if room.current_phase != GamePhase.LOBBY:
        return [OutError(code="BAD_STATE", message=f"Cannot start game in phase {room.current_phase.value}")], []

    min_players = app.state.settings.MIN_PLAYERS
    if len(room.players) < min_players:
        return [OutError(code="NOT_ENOUGH_PLAYERS", message=f"Need at least {min_players} players to start")], []

    ts = now_ms()
    # one chain per seat, seat order is fixed from here on
    await repo.create_game_chains(room.id, len(room.players))
    await repo.set_player_statuses(room.id, PlayerStatus.WAITING)
    room = await repo.update_room(
        room.id,
        current_phase=GamePhase.WRITING,
        current_round=1,
        phase_started_at=ts,
        last_activity=ts,
    )
    start_phase_timer(app, room)
    logger.info("game started room=%s players=%d rounds=%s mode=%s",
                room.id, len(room.players), room.total_rounds, room.game_mode.value)

    started = OutGameStarted(data={"room": room_public(room)})
    return [started], [started, *await task_events(app, room)]
