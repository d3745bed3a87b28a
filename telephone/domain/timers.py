# telephone/domain/timers.py
from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from telephone.store.models import GamePhase
from telephone.transport.protocols import OutTimeUpdate

logger = logging.getLogger(__name__)

Broadcast = Callable[[str, dict], Awaitable[None]]
OnExpire = Callable[[str, GamePhase, int], Awaitable[None]]


@dataclass
class _TimerHandle:
    generation: int
    task: asyncio.Task
    phase: GamePhase
    round_no: int
    duration: float


class PhaseTimerManager:
    """
    One countdown per room.

    start() replaces whatever was running for the room; every tick and the
    final expiry check the handle's generation, so a stopped or replaced timer
    can never broadcast or fire again.
    """

    def __init__(
        self,
        *,
        broadcast: Broadcast,
        on_expire: OnExpire,
        tick_sec: float = 1.0,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._broadcast = broadcast
        self._on_expire = on_expire
        self._tick_sec = tick_sec
        self._clock = clock
        self._timers: Dict[str, _TimerHandle] = {}
        self._generation = 0

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def start(self, room_id: str, duration: float, *, phase: GamePhase, round_no: int) -> None:
        self.stop(room_id)
        self._generation += 1
        gen = self._generation
        task = asyncio.create_task(self._run(room_id, gen, duration, phase, round_no))
        self._timers[room_id] = _TimerHandle(
            generation=gen, task=task, phase=phase, round_no=round_no, duration=duration
        )
        logger.debug("timer started room=%s phase=%s round=%s duration=%s", room_id, phase.value, round_no, duration)

    def stop(self, room_id: str) -> bool:
        handle = self._timers.pop(room_id, None)
        if handle is None:
            return False
        if handle.task is not asyncio.current_task():
            handle.task.cancel()
        logger.debug("timer stopped room=%s", room_id)
        return True

    def stop_all(self) -> None:
        for room_id in list(self._timers.keys()):
            self.stop(room_id)

    def is_running(self, room_id: str) -> bool:
        return room_id in self._timers

    def active_rooms(self) -> list[str]:
        return list(self._timers.keys())

    def _is_current(self, room_id: str, gen: int) -> bool:
        handle = self._timers.get(room_id)
        return handle is not None and handle.generation == gen

    async def _run(self, room_id: str, gen: int, duration: float, phase: GamePhase, round_no: int) -> None:
        started = self._now()
        ticks = 0
        try:
            while True:
                ticks += 1
                # sleep up to the next tick boundary measured from the start, not from the last wake-up
                delay = started + ticks * self._tick_sec - self._now()
                await asyncio.sleep(max(0.0, delay))

                if not self._is_current(room_id, gen):
                    return

                remaining = max(0.0, duration - (self._now() - started))
                await self._broadcast(room_id, OutTimeUpdate(data={"timeLeft": math.ceil(remaining)}).model_dump())

                if remaining <= 0:
                    break
        except asyncio.CancelledError:
            return

        if not self._is_current(room_id, gen):
            return
        # detach before expiring so the expiry handler can start the next phase's timer
        self._timers.pop(room_id, None)
        try:
            await self._on_expire(room_id, phase, round_no)
        except Exception:
            logger.exception("phase timer expiry failed room=%s phase=%s round=%s", room_id, phase.value, round_no)
