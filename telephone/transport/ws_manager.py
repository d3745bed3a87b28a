# telephone/transport/ws_manager.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class Conn:
    conn_id: str
    ws: WebSocket
    room_id: Optional[str] = None
    player_id: Optional[str] = None


@dataclass(frozen=True)
class Session:
    """Read-only view of a connection's binding, handed to the domain layer."""
    conn_id: str
    room_id: Optional[str] = None
    player_id: Optional[str] = None


class WSManager:
    """
    In-memory connection registry.
    - conn_id -> Conn (websocket + the room/player it is bound to)
    Transport-only: no store access, no game rules.
    """
    def __init__(self) -> None:
        self._conns: Dict[str, Conn] = {}
        self._lock = asyncio.Lock()

    async def add(self, conn_id: str, ws: WebSocket) -> None:
        async with self._lock:
            self._conns[conn_id] = Conn(conn_id=conn_id, ws=ws)

    async def remove(self, conn_id: str) -> Optional[Session]:
        async with self._lock:
            conn = self._conns.pop(conn_id, None)
        if conn is None:
            return None
        return Session(conn_id=conn.conn_id, room_id=conn.room_id, player_id=conn.player_id)

    async def session(self, conn_id: str) -> Session:
        async with self._lock:
            conn = self._conns.get(conn_id)
            if conn is None:
                return Session(conn_id=conn_id)
            return Session(conn_id=conn.conn_id, room_id=conn.room_id, player_id=conn.player_id)

    async def bind(self, conn_id: str, room_id: str, player_id: str) -> None:
        async with self._lock:
            conn = self._conns.get(conn_id)
            if conn is None:
                return
            conn.room_id = room_id
            conn.player_id = player_id

    async def unbind(self, conn_id: str) -> None:
        async with self._lock:
            conn = self._conns.get(conn_id)
            if conn is None:
                return
            conn.room_id = None
            conn.player_id = None

    async def _room_conns(self, room_id: str) -> List[Conn]:
        async with self._lock:
            return [c for c in self._conns.values() if c.room_id == room_id]

    async def _send(self, conn: Conn, event: dict) -> None:
        try:
            await conn.ws.send_json(event)
        except Exception as e:
            # dead socket; ws.py cleans up on disconnect
            logger.debug("send failed conn=%s: %s", conn.conn_id, e)

    async def send(self, conn_id: str, event: dict) -> None:
        async with self._lock:
            conn = self._conns.get(conn_id)
        if conn is None:
            return
        await self._send(conn, event)

    async def send_to_player(self, room_id: str, player_id: str, event: dict) -> None:
        for c in await self._room_conns(room_id):
            if c.player_id == player_id:
                await self._send(c, event)

    async def broadcast(self, room_id: str, event: dict, exclude_conn_id: Optional[str] = None) -> None:
        # copy conns under lock, send outside lock
        for c in await self._room_conns(room_id):
            if exclude_conn_id and c.conn_id == exclude_conn_id:
                continue
            await self._send(c, event)

    async def deliver(
        self,
        room_id: Optional[str],
        events: Iterable[Dict[str, Any]],
        exclude_conn_id: Optional[str] = None,
    ) -> None:
        """
        Room-scoped delivery. Dicts carrying "targets" go to those players only;
        everything else is broadcast (minus the excluded connection).
        """
        if not room_id:
            return
        for e in events:
            if isinstance(e, dict) and "targets" in e:
                targets = e.get("targets") or []
                payload = {k: v for k, v in e.items() if k != "targets"}
                for pid in targets:
                    await self.send_to_player(room_id, pid, payload)
                continue
            await self.broadcast(room_id, e, exclude_conn_id=exclude_conn_id)

    async def room_size(self, room_id: str) -> int:
        return len(await self._room_conns(room_id))

    async def close_all(self, code: int = 1001) -> None:
        async with self._lock:
            conns = list(self._conns.values())
            self._conns.clear()
        for c in conns:
            try:
                await c.ws.close(code=code)
            except Exception as e:
                logger.debug("close failed conn=%s: %s", c.conn_id, e)
