# telephone/store/redis_repo.py
from __future__ import annotations

import json
import uuid
from typing import Any, Iterable, List, Optional

from pydantic_core import to_jsonable_python
from redis.asyncio import Redis

from telephone.store.models import (
    Drawing,
    GameChain,
    Guess,
    Player,
    PlayerStatus,
    Room,
    Step,
)
from telephone.store.redis_keys import (
    RK,
    ROOMS_SET,
    chain_owner_key,
    code_key,
    drawing_key,
    guess_key,
)


class RedisRepo:
    """
    Same contract as MemoryRepo, backed by Redis.

    Every key touched for a room shares one TTL that is refreshed on each write,
    so abandoned rooms expire on their own. Global keys (join code, drawing,
    guess and chain records) are listed in the room's refs SET so the same
    refresh reaches them. Read-modify-write sequences are not
    atomic on the Redis side; callers serialize per room (see RoomLocks).
    """

    def __init__(self, r: Redis, room_ttl_sec: int = 1800):
        self.r = r
        self.room_ttl_sec = room_ttl_sec

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/int/None safely."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    def _enc(self, v: Any) -> str:
        return json.dumps(to_jsonable_python(v))

    # ----------------------------
    # Helpers
    # ----------------------------
    async def refresh_room_ttl(self, room_id: str) -> None:
        rk = RK(room_id)
        owned = [self._dec(k) for k in await self.r.smembers(rk.refs())]
        pipe = self.r.pipeline()
        for k in rk.all_room_keys() + owned:
            pipe.expire(k, self.room_ttl_sec)
        await pipe.execute()

    async def _load_players(self, room_id: str) -> List[Player]:
        rk = RK(room_id)
        order = [self._dec(x) for x in await self.r.lrange(rk.order(), 0, -1)]
        data = await self.r.hgetall(rk.players())
        by_id = {self._dec(k): self._dec(v) for k, v in data.items()}
        return [Player.model_validate_json(by_id[pid]) for pid in order if pid in by_id]

    # ----------------------------
    # Rooms
    # ----------------------------
    async def create_room(self, room: Room) -> Room:
        room.code = room.code.upper()
        rk = RK(room.id)
        header = room.model_dump(mode="json", exclude={"players"})
        pipe = self.r.pipeline()
        pipe.delete(*rk.all_room_keys())
        pipe.hset(rk.room(), mapping={k: json.dumps(v) for k, v in header.items()})
        pipe.set(code_key(room.code), room.id, ex=self.room_ttl_sec)
        pipe.sadd(rk.refs(), code_key(room.code))
        pipe.sadd(ROOMS_SET, room.id)
        await pipe.execute()
        for p in room.players:
            await self.add_player(room.id, p)
        await self.refresh_room_ttl(room.id)
        return room

    async def get_room(self, room_id: str) -> Optional[Room]:
        data = await self.r.hgetall(RK(room_id).room())
        if not data:
            return None
        fields = {self._dec(k): json.loads(self._dec(v)) for k, v in data.items()}
        fields["players"] = await self._load_players(room_id)
        return Room.model_validate(fields)

    async def get_room_by_code(self, code: str) -> Optional[Room]:
        room_id = self._dec(await self.r.get(code_key(code or "")))
        if not room_id:
            return None
        return await self.get_room(room_id)

    async def update_room(self, room_id: str, **fields: Any) -> Optional[Room]:
        rk = RK(room_id)
        if not await self.r.exists(rk.room()):
            return None
        if fields:
            await self.r.hset(rk.room(), mapping={k: self._enc(v) for k, v in fields.items()})
        await self.refresh_room_ttl(room_id)
        return await self.get_room(room_id)

    async def delete_room(self, room_id: str) -> bool:
        rk = RK(room_id)
        room = await self.get_room(room_id)
        if room is None:
            await self.r.srem(ROOMS_SET, room_id)
            return False

        owned = [self._dec(k) for k in await self.r.smembers(rk.refs())]
        keys = rk.all_room_keys() + [code_key(room.code)] + owned

        pipe = self.r.pipeline()
        pipe.delete(*keys)
        pipe.srem(ROOMS_SET, room_id)
        await pipe.execute()
        return True

    async def list_rooms(self) -> List[Room]:
        ids = sorted(self._dec(x) for x in await self.r.smembers(ROOMS_SET))
        rooms: List[Room] = []
        for room_id in ids:
            room = await self.get_room(room_id)
            if room is None:
                # header expired via TTL
                await self.r.srem(ROOMS_SET, room_id)
                continue
            rooms.append(room)
        return rooms

    # ----------------------------
    # Players
    # ----------------------------
    async def add_player(self, room_id: str, player: Player) -> Optional[Player]:
        rk = RK(room_id)
        if not await self.r.exists(rk.room()):
            return None
        pipe = self.r.pipeline()
        pipe.hset(rk.players(), player.id, player.model_dump_json())
        pipe.rpush(rk.order(), player.id)
        await pipe.execute()
        await self.refresh_room_ttl(room_id)
        return player

    async def remove_player(self, room_id: str, player_id: str) -> bool:
        rk = RK(room_id)
        removed = await self.r.hdel(rk.players(), player_id)
        await self.r.lrem(rk.order(), 0, player_id)
        return bool(removed)

    async def update_player(self, room_id: str, player_id: str, **fields: Any) -> Optional[Player]:
        rk = RK(room_id)
        raw = await self.r.hget(rk.players(), player_id)
        if not raw:
            return None
        p = Player.model_validate_json(self._dec(raw))
        for k, v in fields.items():
            setattr(p, k, v)
        await self.r.hset(rk.players(), player_id, p.model_dump_json())
        await self.refresh_room_ttl(room_id)
        return p

    async def get_player(self, room_id: str, player_id: str) -> Optional[Player]:
        raw = await self.r.hget(RK(room_id).players(), player_id)
        if not raw:
            return None
        return Player.model_validate_json(self._dec(raw))

    async def set_player_statuses(
        self,
        room_id: str,
        status: PlayerStatus,
        *,
        only: Optional[Iterable[PlayerStatus]] = None,
    ) -> List[str]:
        rk = RK(room_id)
        allowed = set(only) if only is not None else None
        changed: List[str] = []
        pipe = self.r.pipeline()
        for p in await self._load_players(room_id):
            if allowed is not None and p.status not in allowed:
                continue
            if p.status != status:
                p.status = status
                pipe.hset(rk.players(), p.id, p.model_dump_json())
                changed.append(p.id)
        await pipe.execute()
        return changed

    # ----------------------------
    # Drawings / guesses
    # ----------------------------
    async def create_drawing(self, drawing: Drawing) -> Drawing:
        rk = RK(drawing.room_id)
        pipe = self.r.pipeline()
        pipe.set(drawing_key(drawing.id), drawing.model_dump_json(), ex=self.room_ttl_sec)
        pipe.sadd(rk.refs(), drawing_key(drawing.id))
        pipe.rpush(rk.drawings(), drawing.id)
        await pipe.execute()
        await self.refresh_room_ttl(drawing.room_id)
        return drawing

    async def get_drawing(self, drawing_id: str) -> Optional[Drawing]:
        raw = await self.r.get(drawing_key(drawing_id))
        if not raw:
            return None
        return Drawing.model_validate_json(self._dec(raw))

    async def get_drawings_by_room(self, room_id: str) -> List[Drawing]:
        ids = [self._dec(x) for x in await self.r.lrange(RK(room_id).drawings(), 0, -1)]
        if not ids:
            return []
        raw = await self.r.mget([drawing_key(i) for i in ids])
        return [Drawing.model_validate_json(self._dec(x)) for x in raw if x]

    async def get_drawings_by_round(self, room_id: str, round_no: int) -> List[Drawing]:
        return [d for d in await self.get_drawings_by_room(room_id) if d.round == round_no]

    async def create_guess(self, guess: Guess) -> Guess:
        rk = RK(guess.room_id)
        pipe = self.r.pipeline()
        pipe.set(guess_key(guess.id), guess.model_dump_json(), ex=self.room_ttl_sec)
        pipe.sadd(rk.refs(), guess_key(guess.id))
        pipe.rpush(rk.guesses(), guess.id)
        await pipe.execute()
        await self.refresh_room_ttl(guess.room_id)
        return guess

    async def get_guess(self, guess_id: str) -> Optional[Guess]:
        raw = await self.r.get(guess_key(guess_id))
        if not raw:
            return None
        return Guess.model_validate_json(self._dec(raw))

    async def get_guesses_by_room(self, room_id: str) -> List[Guess]:
        ids = [self._dec(x) for x in await self.r.lrange(RK(room_id).guesses(), 0, -1)]
        if not ids:
            return []
        raw = await self.r.mget([guess_key(i) for i in ids])
        return [Guess.model_validate_json(self._dec(x)) for x in raw if x]

    async def get_guesses_by_round(self, room_id: str, round_no: int) -> List[Guess]:
        return [g for g in await self.get_guesses_by_room(room_id) if g.round == round_no]

    # ----------------------------
    # Chains
    # ----------------------------
    async def create_game_chains(self, room_id: str, count: int) -> List[GameChain]:
        rk = RK(room_id)
        chains = [
            GameChain(id=uuid.uuid4().hex, room_id=room_id, chain_index=i, steps=[])
            for i in range(count)
        ]
        pipe = self.r.pipeline()
        for c in chains:
            pipe.hset(rk.chains(), c.id, c.model_dump_json())
            pipe.hset(rk.chain_index(), str(c.chain_index), c.id)
            pipe.set(chain_owner_key(c.id), room_id, ex=self.room_ttl_sec)
            pipe.sadd(rk.refs(), chain_owner_key(c.id))
        await pipe.execute()
        await self.refresh_room_ttl(room_id)
        return chains

    async def _chain_room(self, chain_id: str) -> Optional[str]:
        return self._dec(await self.r.get(chain_owner_key(chain_id)))

    async def get_game_chain(self, chain_id: str) -> Optional[GameChain]:
        room_id = await self._chain_room(chain_id)
        if not room_id:
            return None
        raw = await self.r.hget(RK(room_id).chains(), chain_id)
        if not raw:
            return None
        return GameChain.model_validate_json(self._dec(raw))

    async def get_game_chains_by_room(self, room_id: str) -> List[GameChain]:
        data = await self.r.hgetall(RK(room_id).chains())
        chains = [GameChain.model_validate_json(self._dec(v)) for v in data.values()]
        chains.sort(key=lambda c: c.chain_index)
        return chains

    async def get_game_chain_by_index(self, room_id: str, chain_index: int) -> Optional[GameChain]:
        chain_id = self._dec(await self.r.hget(RK(room_id).chain_index(), str(chain_index)))
        if not chain_id:
            return None
        return await self.get_game_chain(chain_id)

    async def append_step(self, chain_id: str, step: Step) -> Optional[GameChain]:
        chain = await self.get_game_chain(chain_id)
        if chain is None:
            return None
        chain.steps.append(step)
        await self.r.hset(RK(chain.room_id).chains(), chain.id, chain.model_dump_json())
        await self.refresh_room_ttl(chain.room_id)
        return chain

    async def update_game_chain(self, chain_id: str, **fields: Any) -> Optional[GameChain]:
        chain = await self.get_game_chain(chain_id)
        if chain is None:
            return None
        for k, v in fields.items():
            setattr(chain, k, v)
        await self.r.hset(RK(chain.room_id).chains(), chain.id, chain.model_dump_json())
        await self.refresh_room_ttl(chain.room_id)
        return chain
