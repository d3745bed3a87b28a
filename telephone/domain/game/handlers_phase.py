# telephone/domain/game/handlers_phase.py
from __future__ import annotations

import logging
from typing import List

from telephone.domain.common.fsm import can_transition_phase, next_phase
from telephone.domain.common.snapshot import chains_public, room_public
from telephone.domain.queries import resolve_player_task
from telephone.store.models import GameChain, GamePhase, PlayerStatus, Room
from telephone.transport.protocols import (
    OutGameResults,
    OutPhaseChanged,
    OutTaskAssigned,
    dump_events,
    targeted,
)
from telephone.util.timeutil import now_ms

logger = logging.getLogger(__name__)

Outgoing = List[object]


def phase_duration(room: Room, phase: GamePhase) -> int:
    if phase == GamePhase.WRITING:
        return room.writing_time
    if phase == GamePhase.DRAWING:
        return room.drawing_time
    if phase == GamePhase.GUESSING:
        return room.guessing_time
    raise ValueError(f"Phase {phase.value} is not timed")


def start_phase_timer(app, room: Room) -> None:
    app.state.timers.start(
        room.id,
        phase_duration(room, room.current_phase),
        phase=room.current_phase,
        round_no=room.current_round,
    )


async def task_events(app, room: Room) -> Outgoing:
    """One targeted task_assigned per player that has work this round."""
    repo = app.state.repo
    out: Outgoing = []
    for p in room.players:
        task = await resolve_player_task(repo, room, p.id)
        if task is None:
            logger.warning("no task for player=%s room=%s phase=%s round=%s",
                           p.id, room.id, room.current_phase.value, room.current_round)
            continue
        ev = OutTaskAssigned(data={"task": task.model_dump(by_alias=True, mode="json", exclude_none=True)})
        out.append(targeted(ev, [p.id]))
    return out


async def _finalize_chains(repo, room_id: str) -> List[GameChain]:
    chains = await repo.get_game_chains_by_room(room_id)
    for c in chains:
        if c.steps:
            await repo.update_game_chain(c.id, final_result=c.steps[-1].content)
    return await repo.get_game_chains_by_room(room_id)


def _phase_changed(room: Room, *, timed_out: bool) -> OutPhaseChanged:
    return OutPhaseChanged(data={
        "room": room_public(room),
        "phase": room.current_phase.value,
        "round": room.current_round,
        "timedOut": timed_out,
    })


async def advance_phase(app, room: Room, *, timed_out: bool = False) -> Outgoing:
    """
    Move the room to its next phase.
    Timed phases: round += 1, statuses reset, fresh timer, tasks handed out.
    Results: chains get their final result, no timer.
    Caller holds the room lock.
    """
    repo = app.state.repo
    target = next_phase(room.current_phase, room.current_round, room.total_rounds)
    if not can_transition_phase(room.current_phase, target):
        raise ValueError(f"Illegal transition {room.current_phase.value} -> {target.value}")

    app.state.timers.stop(room.id)
    ts = now_ms()

    if target == GamePhase.RESULTS:
        room = await repo.update_room(
            room.id, current_phase=GamePhase.RESULTS, phase_started_at=ts, last_activity=ts
        )
        chains = await _finalize_chains(repo, room.id)
        logger.info("game finished room=%s rounds=%s chains=%d", room.id, room.current_round, len(chains))
        return [
            _phase_changed(room, timed_out=timed_out),
            OutGameResults(data={"chains": chains_public(room, chains)}),
        ]

    await repo.set_player_statuses(room.id, PlayerStatus.WAITING)
    room = await repo.update_room(
        room.id,
        current_phase=target,
        current_round=room.current_round + 1,
        phase_started_at=ts,
        last_activity=ts,
    )
    start_phase_timer(app, room)
    logger.info("phase changed room=%s phase=%s round=%s timed_out=%s",
                room.id, target.value, room.current_round, timed_out)

    return [_phase_changed(room, timed_out=timed_out), *await task_events(app, room)]


async def handle_phase_timeout(app, room_id: str, phase: GamePhase, round_no: int) -> Outgoing:
    """
    Timer expiry callback. Anyone still working is marked finished and the room
    advances. Expiries for a phase/round the room already left are ignored.
    """
    repo = app.state.repo

    async with app.state.locks.lock_for(room_id):
        room = await repo.get_room(room_id)
        if room is None or room.current_phase != phase or room.current_round != round_no:
            logger.debug("stale timer expiry room=%s phase=%s round=%s", room_id, phase.value, round_no)
            return []

        forced = await repo.set_player_statuses(
            room_id, PlayerStatus.FINISHED, only=(PlayerStatus.WAITING, PlayerStatus.ACTIVE)
        )
        logger.info("phase timed out room=%s phase=%s round=%s forced=%s", room_id, phase.value, round_no, forced)

        room = await repo.get_room(room_id)
        events = await advance_phase(app, room, timed_out=True)
        await app.state.wsman.deliver(room_id, dump_events(events))

    return events
