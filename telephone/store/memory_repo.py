# telephone/store/memory_repo.py
from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Optional

from telephone.store.models import (
    Drawing,
    GameChain,
    Guess,
    Player,
    PlayerStatus,
    Room,
    Step,
)


class MemoryRepo:
    """
    In-process room store (default backend).

    Rooms own their ordered player list; updates mutate fields in place.
    Every method is a coroutine so the orchestrator can swap in RedisRepo
    without changes. Lookups return None/False/[] on absence, never raise.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}
        self._codes: Dict[str, str] = {}         # CODE -> room id
        self._drawings: Dict[str, Drawing] = {}
        self._guesses: Dict[str, Guess] = {}
        self._chains: Dict[str, GameChain] = {}

    # ----------------------------
    # Rooms
    # ----------------------------
    async def create_room(self, room: Room) -> Room:
        room.code = room.code.upper()
        self._rooms[room.id] = room
        self._codes[room.code] = room.id
        return room

    async def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    async def get_room_by_code(self, code: str) -> Optional[Room]:
        room_id = self._codes.get((code or "").upper())
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    async def update_room(self, room_id: str, **fields: Any) -> Optional[Room]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        for k, v in fields.items():
            setattr(room, k, v)
        return room

    async def delete_room(self, room_id: str) -> bool:
        room = self._rooms.pop(room_id, None)
        if room is None:
            return False
        self._codes.pop(room.code, None)
        self._drawings = {k: d for k, d in self._drawings.items() if d.room_id != room_id}
        self._guesses = {k: g for k, g in self._guesses.items() if g.room_id != room_id}
        self._chains = {k: c for k, c in self._chains.items() if c.room_id != room_id}
        return True

    async def list_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    # ----------------------------
    # Players
    # ----------------------------
    async def add_player(self, room_id: str, player: Player) -> Optional[Player]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        room.players.append(player)
        return player

    async def remove_player(self, room_id: str, player_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None:
            return False
        idx = room.player_index(player_id)
        if idx is None:
            return False
        del room.players[idx]
        return True

    async def update_player(self, room_id: str, player_id: str, **fields: Any) -> Optional[Player]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        player = room.find_player(player_id)
        if player is None:
            return None
        for k, v in fields.items():
            setattr(player, k, v)
        return player

    async def get_player(self, room_id: str, player_id: str) -> Optional[Player]:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        return room.find_player(player_id)

    async def set_player_statuses(
        self,
        room_id: str,
        status: PlayerStatus,
        *,
        only: Optional[Iterable[PlayerStatus]] = None,
    ) -> List[str]:
        room = self._rooms.get(room_id)
        if room is None:
            return []
        allowed = set(only) if only is not None else None
        changed: List[str] = []
        for p in room.players:
            if allowed is not None and p.status not in allowed:
                continue
            if p.status != status:
                p.status = status
                changed.append(p.id)
        return changed

    # ----------------------------
    # Drawings
    # ----------------------------
    async def create_drawing(self, drawing: Drawing) -> Drawing:
        self._drawings[drawing.id] = drawing
        return drawing

    async def get_drawing(self, drawing_id: str) -> Optional[Drawing]:
        return self._drawings.get(drawing_id)

    async def get_drawings_by_room(self, room_id: str) -> List[Drawing]:
        return [d for d in self._drawings.values() if d.room_id == room_id]

    async def get_drawings_by_round(self, room_id: str, round_no: int) -> List[Drawing]:
        return [d for d in self._drawings.values() if d.room_id == room_id and d.round == round_no]

    # ----------------------------
    # Guesses
    # ----------------------------
    async def create_guess(self, guess: Guess) -> Guess:
        self._guesses[guess.id] = guess
        return guess

    async def get_guess(self, guess_id: str) -> Optional[Guess]:
        return self._guesses.get(guess_id)

    async def get_guesses_by_room(self, room_id: str) -> List[Guess]:
        return [g for g in self._guesses.values() if g.room_id == room_id]

    async def get_guesses_by_round(self, room_id: str, round_no: int) -> List[Guess]:
        return [g for g in self._guesses.values() if g.room_id == room_id and g.round == round_no]

    # ----------------------------
    # Chains
    # ----------------------------
    async def create_game_chains(self, room_id: str, count: int) -> List[GameChain]:
        chains = [
            GameChain(id=uuid.uuid4().hex, room_id=room_id, chain_index=i, steps=[])
            for i in range(count)
        ]
        for c in chains:
            self._chains[c.id] = c
        return chains

    async def get_game_chain(self, chain_id: str) -> Optional[GameChain]:
        return self._chains.get(chain_id)

    async def get_game_chains_by_room(self, room_id: str) -> List[GameChain]:
        chains = [c for c in self._chains.values() if c.room_id == room_id]
        chains.sort(key=lambda c: c.chain_index)
        return chains

    async def get_game_chain_by_index(self, room_id: str, chain_index: int) -> Optional[GameChain]:
        for c in self._chains.values():
            if c.room_id == room_id and c.chain_index == chain_index:
                return c
        return None

    async def append_step(self, chain_id: str, step: Step) -> Optional[GameChain]:
        chain = self._chains.get(chain_id)
        if chain is None:
            return None
        chain.steps.append(step)
        return chain

    async def update_game_chain(self, chain_id: str, **fields: Any) -> Optional[GameChain]:
        chain = self._chains.get(chain_id)
        if chain is None:
            return None
        for k, v in fields.items():
            setattr(chain, k, v)
        return chain
