# telephone/domain/queries.py
from __future__ import annotations

from typing import List, Optional

from telephone.domain.common.fsm import ACTIVE_PHASES
from telephone.domain.helpers import chain_index_for, resolve_task
from telephone.store.models import Drawing, GameChain, GamePhase, Guess, Room, Task


async def get_room_by_id_or_code(repo, key: str) -> Optional[Room]:
    room = await repo.get_room(key)
    if room is not None:
        return room
    return await repo.get_room_by_code(key)


async def get_drawings(repo, room_id: str, round_no: Optional[int] = None) -> List[Drawing]:
    if round_no is None:
        return await repo.get_drawings_by_room(room_id)
    return await repo.get_drawings_by_round(room_id, round_no)


async def get_guesses(repo, room_id: str, round_no: Optional[int] = None) -> List[Guess]:
    if round_no is None:
        return await repo.get_guesses_by_room(room_id)
    return await repo.get_guesses_by_round(room_id, round_no)


async def chain_for_player(repo, room: Room, player_id: str) -> Optional[GameChain]:
    """Chain the player works on in the room's current phase and round."""
    if room.current_phase not in ACTIVE_PHASES:
        return None
    idx = room.player_index(player_id)
    if idx is None:
        return None
    chain_index = chain_index_for(idx, room.current_round, room.current_phase, len(room.players))
    return await repo.get_game_chain_by_index(room.id, chain_index)


async def resolve_player_task(repo, room: Room, player_id: str) -> Optional[Task]:
    """
    Current task for a player, or None when there is nothing to do
    (not in an active phase, unknown player, or a broken chain).
    """
    chain = await chain_for_player(repo, room, player_id)
    if chain is None:
        return None
    drawings: List[Drawing] = []
    if room.current_phase == GamePhase.GUESSING:
        drawings = await repo.get_drawings_by_round(room.id, room.current_round - 1)
    return resolve_task(
        chain=chain,
        phase=room.current_phase,
        current_round=room.current_round,
        drawings=drawings,
    )
