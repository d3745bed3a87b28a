# telephone/domain/lifecycle/handlers.py
from __future__ import annotations

import logging
import random
import string
import uuid
from typing import List, Optional, Tuple

from telephone.domain.common.modes import mode_config
from telephone.domain.common.snapshot import player_public, room_public
from telephone.domain.common.validation import (
    has_connected_players,
    is_full,
    is_game_active,
    is_name_taken,
)
from telephone.settings import Settings
from telephone.store.models import GameMode, GamePhase, Player, PlayerStatus, Room
from telephone.transport.protocols import (
    InJoinRoom,
    InLeaveRoom,
    OutError,
    OutgoingEvent,
    OutPlayerDisconnected,
    OutPlayerJoined,
    OutPlayerLeft,
    OutRoomJoined,
)
from telephone.transport.ws_manager import Session
from telephone.util.timeutil import now_ms

logger = logging.getLogger(__name__)

# Returns: (to_sender, to_room)
Result = Tuple[List[OutgoingEvent], List[OutgoingEvent]]


class RoomCreationError(Exception):
    pass


def _gen_room_code(n: int = 6) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(n))


# -------------------------
# Room creation (HTTP)
# -------------------------

async def create_room(
    repo,
    settings: Settings,
    *,
    game_mode: GameMode = GameMode.NORMAL,
    max_players: Optional[int] = None,
    total_rounds: Optional[int] = None,
    writing_time: Optional[int] = None,
    drawing_time: Optional[int] = None,
    guessing_time: Optional[int] = None,
) -> Room:
    """
    Create an empty room in the lobby. The first player to join becomes host.
    Raises ValueError for a player cap the mode does not allow and
    RoomCreationError when no free code was found.
    """
    cfg = mode_config(game_mode)
    cap = max_players if max_players is not None else min(settings.DEFAULT_MAX_PLAYERS, cfg.max_players)
    if cap < cfg.min_players or cap > cfg.max_players:
        raise ValueError(
            f"maxPlayers must be between {cfg.min_players} and {cfg.max_players} for {game_mode.value} mode"
        )

    code = ""
    for _ in range(settings.ROOM_CODE_ATTEMPTS):
        candidate = _gen_room_code()
        if await repo.get_room_by_code(candidate) is None:
            code = candidate
            break
    if not code:
        raise RoomCreationError("Unable to generate unique room code")

    ts = now_ms()
    room = Room(
        id=uuid.uuid4().hex,
        code=code,
        host_id="",
        players=[],
        max_players=cap,
        game_mode=game_mode,
        current_phase=GamePhase.LOBBY,
        current_round=0,
        total_rounds=total_rounds or settings.DEFAULT_TOTAL_ROUNDS,
        writing_time=writing_time or settings.WRITING_TIME_SEC,
        drawing_time=drawing_time or cfg.drawing_time,
        guessing_time=guessing_time or cfg.guessing_time,
        created_at=ts,
        last_activity=ts,
    )
    room = await repo.create_room(room)
    logger.info("room created id=%s code=%s mode=%s cap=%s", room.id, room.code, game_mode.value, cap)
    return room


# -------------------------
# Shared departure logic
# -------------------------

async def _remove_from_lobby(app, room: Room, player_id: str) -> Optional[Room]:
    """
    Drop the player from the roster. Host passes to the earliest remaining
    joiner; an emptied room loses its timer and waits for the idle sweeper.
    """
    repo = app.state.repo
    ts = now_ms()

    was_host = room.host_id == player_id
    await repo.remove_player(room.id, player_id)
    room = await repo.get_room(room.id)
    if room is None:
        return None

    if not room.players:
        app.state.timers.stop(room.id)
        return await repo.update_room(room.id, host_id="", last_activity=ts)

    if was_host:
        new_host = room.players[0]
        await repo.update_player(room.id, new_host.id, is_host=True)
        logger.info("host moved room=%s from=%s to=%s", room.id, player_id, new_host.id)
        return await repo.update_room(room.id, host_id=new_host.id, last_activity=ts)

    return await repo.update_room(room.id, last_activity=ts)


async def _detach_from_game(app, room: Room, player_id: str) -> Optional[Room]:
    """
    Mid-game the seat stays (rotation is by seat index). Status is left alone so
    a timeout still finishes the player.
    """
    repo = app.state.repo
    await repo.update_player(room.id, player_id, connected=False, session_id=None)
    room = await repo.update_room(room.id, last_activity=now_ms())
    if room is not None and not has_connected_players(room):
        app.state.timers.stop(room.id)
        logger.info("room=%s has no connected players, timer stopped", room.id)
    return room


# -------------------------
# Handlers
# -------------------------

async def handle_join(*, app, session: Session, msg: InJoinRoom) -> Result:
    """
    Join:
    - look up room by (case-insensitive) code
    - reject full rooms, taken names, started games
    - first joiner becomes host
    - joiner gets full room state, everyone else gets player_joined
    """
    repo = app.state.repo
    name = msg.data.playerName

    if session.room_id:
        return [OutError(code="ALREADY_IN_ROOM", message="Already in a room")], []

    room = await repo.get_room_by_code(msg.data.roomCode)
    if room is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found")], []
    if is_game_active(room):
        return [OutError(code="GAME_IN_PROGRESS", message="Game already started")], []
    if is_full(room):
        return [OutError(code="ROOM_FULL", message="Room is full")], []
    if is_name_taken(room, name):
        return [OutError(code="NAME_TAKEN", message="Name already taken")], []

    ts = now_ms()
    first = not room.players
    player = Player(
        id=uuid.uuid4().hex,
        name=name,
        score=0,
        status=PlayerStatus.WAITING,
        is_host=first,
        connected=True,
        session_id=session.conn_id,
        joined_at=ts,
    )
    if await repo.add_player(room.id, player) is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found")], []

    fields = {"last_activity": ts}
    if first:
        fields["host_id"] = player.id
    room = await repo.update_room(room.id, **fields)

    await app.state.wsman.bind(session.conn_id, room.id, player.id)
    logger.info("player joined room=%s code=%s player=%s host=%s players=%d",
                room.id, room.code, player.id, first, len(room.players))

    snap = room_public(room)
    return (
        [OutRoomJoined(data={"room": snap, "playerId": player.id})],
        [OutPlayerJoined(data={"player": player_public(player), "room": snap})],
    )


async def handle_leave(*, app, session: Session, msg: InLeaveRoom) -> Result:
    repo = app.state.repo
    room_id = msg.data.roomId

    if not session.player_id or session.room_id != room_id:
        return [OutError(code="UNAUTHORIZED", message="Not a member of this room")], []

    room = await repo.get_room(room_id)
    if room is None:
        return [OutError(code="ROOM_NOT_FOUND", message="Room not found")], []

    player_id = session.player_id
    await app.state.wsman.unbind(session.conn_id)

    if room.current_phase == GamePhase.LOBBY:
        room = await _remove_from_lobby(app, room, player_id)
    else:
        room = await _detach_from_game(app, room, player_id)

    logger.info("player left room=%s player=%s", room_id, player_id)
    ev = OutPlayerLeft(data={"playerId": player_id, "room": room_public(room) if room else None})
    return [ev], [ev]


async def handle_disconnect(*, app, session: Session) -> Result:
    """
    Called by transport when the socket goes away.
    Lobby: same as leaving. In game: keep the seat, clear the transport binding.
    """
    if not session.player_id or not session.room_id:
        return [], []

    repo = app.state.repo
    room = await repo.get_room(session.room_id)
    if room is None or room.find_player(session.player_id) is None:
        return [], []

    if room.current_phase == GamePhase.LOBBY:
        room = await _remove_from_lobby(app, room, session.player_id)
        logger.info("player disconnected from lobby room=%s player=%s", session.room_id, session.player_id)
        return [], [OutPlayerDisconnected(data={
            "playerId": session.player_id,
            "room": room_public(room) if room else None,
        })]

    await _detach_from_game(app, room, session.player_id)
    logger.info("player disconnected mid-game room=%s player=%s", session.room_id, session.player_id)
    return [], []


# -------------------------
# Housekeeping
# -------------------------

async def sweep_idle_rooms(app, *, now: Optional[int] = None) -> List[str]:
    """
    Delete rooms nobody is connected to once they have been idle for
    ROOM_IDLE_SEC. Returns the deleted room ids.
    """
    repo = app.state.repo
    locks = app.state.locks
    idle_ms = app.state.settings.ROOM_IDLE_SEC * 1000
    ts = now if now is not None else now_ms()

    deleted: List[str] = []
    for candidate in await repo.list_rooms():
        async with locks.lock_for(candidate.id):
            room = await repo.get_room(candidate.id)
            if room is None or has_connected_players(room):
                continue
            if ts - room.last_activity < idle_ms:
                continue
            app.state.timers.stop(room.id)
            await repo.delete_room(room.id)
            deleted.append(room.id)
        locks.discard(candidate.id)

    if deleted:
        logger.info("swept %d idle room(s)", len(deleted))
    return deleted
