# telephone/domain/common/locks.py
from __future__ import annotations

import asyncio
from typing import Dict


class RoomLocks:
    """
    One asyncio.Lock per room id.
    Store calls are awaitable, so every state-changing action and every timer
    expiry for a room runs while holding that room's lock.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}

    def lock_for(self, room_id: str) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[room_id] = lock
        return lock

    def discard(self, room_id: str) -> None:
        lock = self._locks.get(room_id)
        if lock is not None and not lock.locked():
            self._locks.pop(room_id, None)

    def __len__(self) -> int:
        return len(self._locks)
