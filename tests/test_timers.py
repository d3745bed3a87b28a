import asyncio
import logging

import pytest

from telephone.domain.timers import PhaseTimerManager
from telephone.store.models import GamePhase


class Recorder:
    def __init__(self):
        self.ticks = []
        self.expired = []

    async def broadcast(self, room_id, event):
        self.ticks.append((room_id, event["data"]["timeLeft"]))

    async def on_expire(self, room_id, phase, round_no):
        self.expired.append((room_id, phase, round_no))


async def _wait_for(pred, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not pred():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_timer_ticks_down_then_expires():
    rec = Recorder()
    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=rec.on_expire, tick_sec=0.01)

    timers.start("r1", 0.05, phase=GamePhase.WRITING, round_no=1)
    assert timers.is_running("r1")
    await _wait_for(lambda: rec.expired)

    assert rec.expired == [("r1", GamePhase.WRITING, 1)]
    assert rec.ticks
    assert rec.ticks[-1] == ("r1", 0)
    assert all(isinstance(left, int) and left >= 0 for _, left in rec.ticks)
    assert not timers.is_running("r1")


@pytest.mark.asyncio
async def test_new_timer_replaces_old_one():
    rec = Recorder()
    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=rec.on_expire, tick_sec=0.01)

    timers.start("r1", 0.03, phase=GamePhase.WRITING, round_no=1)
    timers.start("r1", 0.08, phase=GamePhase.DRAWING, round_no=2)
    assert timers.active_rooms() == ["r1"]

    await _wait_for(lambda: rec.expired)
    await asyncio.sleep(0.05)
    assert rec.expired == [("r1", GamePhase.DRAWING, 2)]


@pytest.mark.asyncio
async def test_stopped_timer_stays_silent():
    rec = Recorder()
    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=rec.on_expire, tick_sec=0.01)

    timers.start("r1", 0.03, phase=GamePhase.WRITING, round_no=1)
    assert timers.stop("r1") is True
    assert timers.stop("r1") is False

    await asyncio.sleep(0.1)
    assert rec.ticks == []
    assert rec.expired == []


@pytest.mark.asyncio
async def test_rooms_time_independently():
    rec = Recorder()
    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=rec.on_expire, tick_sec=0.01)

    timers.start("a", 0.02, phase=GamePhase.WRITING, round_no=1)
    timers.start("b", 0.06, phase=GamePhase.GUESSING, round_no=3)
    await _wait_for(lambda: len(rec.expired) == 2)

    assert rec.expired == [("a", GamePhase.WRITING, 1), ("b", GamePhase.GUESSING, 3)]
    timers.stop_all()
    assert timers.active_rooms() == []


@pytest.mark.asyncio
async def test_expiry_can_start_next_timer():
    rec = Recorder()
    timers = None

    async def on_expire(room_id, phase, round_no):
        rec.expired.append((room_id, phase, round_no))
        if phase == GamePhase.WRITING:
            timers.start(room_id, 0.02, phase=GamePhase.DRAWING, round_no=round_no + 1)

    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=on_expire, tick_sec=0.01)
    timers.start("r1", 0.02, phase=GamePhase.WRITING, round_no=1)
    await _wait_for(lambda: len(rec.expired) == 2)

    assert rec.expired == [("r1", GamePhase.WRITING, 1), ("r1", GamePhase.DRAWING, 2)]


@pytest.mark.asyncio
async def test_failing_expiry_is_logged(caplog):
    rec = Recorder()

    async def on_expire(room_id, phase, round_no):
        rec.expired.append(room_id)
        raise RuntimeError("boom")

    timers = PhaseTimerManager(broadcast=rec.broadcast, on_expire=on_expire, tick_sec=0.01)
    with caplog.at_level(logging.ERROR, logger="telephone.domain.timers"):
        timers.start("r1", 0.02, phase=GamePhase.WRITING, round_no=1)
        await _wait_for(lambda: rec.expired)
        await asyncio.sleep(0.02)

    assert "expiry failed" in caplog.text
    assert not timers.is_running("r1")
