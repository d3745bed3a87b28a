# telephone/domain/game/handlers_submit.py
from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Tuple, Type

from telephone.domain.common.snapshot import room_public
from telephone.domain.game.handlers_phase import advance_phase
from telephone.domain.helpers import resolve_task
from telephone.domain.queries import chain_for_player
from telephone.store.models import (
    Drawing,
    GamePhase,
    Guess,
    PlayerStatus,
    Room,
    Step,
    StepType,
)
from telephone.transport.protocols import (
    InSubmitDrawing,
    InSubmitGuess,
    InSubmitPrompt,
    OutDrawingSubmitted,
    OutError,
    OutEvent,
    OutGuessSubmitted,
    OutPromptSubmitted,
)
from telephone.transport.ws_manager import Session
from telephone.util.timeutil import elapsed_sec, now_ms

logger = logging.getLogger(__name__)

Outgoing = List[object]
Result = Tuple[Outgoing, Outgoing]


async def _submitter(repo, session: Session, room_id: str, phase: GamePhase) -> Tuple[Optional[Room], Outgoing]:
    """Common gate for all submissions. Returns (room, errors)."""
    if not session.player_id or session.room_id != room_id:
        return None, [OutError(code="UNAUTHORIZED", message="Not a member of this room")]

    room = await repo.get_room(room_id)
    if room is None:
        return None, [OutError(code="ROOM_NOT_FOUND", message="Room not found")]

    player = room.find_player(session.player_id)
    if player is None:
        return None, [OutError(code="PLAYER_NOT_FOUND", message="Player not found")]

    if room.current_phase != phase:
        return None, [OutError(
            code="WRONG_PHASE",
            message=f"Cannot submit during the {room.current_phase.value} phase",
        )]

    if player.status == PlayerStatus.FINISHED:
        return None, [OutError(code="ALREADY_SUBMITTED", message="Already submitted this round")]

    return room, []


async def _finish(app, room: Room, player_id: str, event_cls: Type[OutEvent]) -> Result:
    """Mark the player done and advance once the whole room is."""
    repo = app.state.repo
    await repo.update_player(room.id, player_id, status=PlayerStatus.FINISHED)
    room = await repo.update_room(room.id, last_activity=now_ms())

    submitted = event_cls(data={"playerId": player_id, "room": room_public(room)})
    to_sender: Outgoing = [submitted]
    to_room: Outgoing = [submitted]

    if room.all_finished():
        phase_events = await advance_phase(app, room)
        # targeted events reach the sender through room delivery
        to_sender.extend(e for e in phase_events if not isinstance(e, dict))
        to_room.extend(phase_events)

    return to_sender, to_room


async def handle_submit_prompt(*, app, session: Session, msg: InSubmitPrompt) -> Result:
    repo = app.state.repo
    room, errors = await _submitter(repo, session, msg.data.roomId, GamePhase.WRITING)
    if errors:
        return errors, []

    chain = await chain_for_player(repo, room, session.player_id)
    if chain is None:
        return [OutError(code="CHAIN_NOT_FOUND", message="Chain not found")], []

    await repo.append_step(chain.id, Step(
        type=StepType.PROMPT,
        player_id=session.player_id,
        content=msg.data.prompt,
        round=room.current_round,
        timestamp=now_ms(),
    ))
    logger.debug("prompt submitted room=%s player=%s chain=%s", room.id, session.player_id, chain.chain_index)
    return await _finish(app, room, session.player_id, OutPromptSubmitted)


async def handle_submit_drawing(*, app, session: Session, msg: InSubmitDrawing) -> Result:
    repo = app.state.repo
    room, errors = await _submitter(repo, session, msg.data.roomId, GamePhase.DRAWING)
    if errors:
        return errors, []

    chain = await chain_for_player(repo, room, session.player_id)
    if chain is None:
        return [OutError(code="CHAIN_NOT_FOUND", message="Chain not found")], []

    task = resolve_task(chain=chain, phase=room.current_phase, current_round=room.current_round)
    if task is None or task.prompt is None:
        return [OutError(code="NO_TASK", message="No prompt found for this player")], []

    ts = now_ms()
    await repo.create_drawing(Drawing(
        id=uuid.uuid4().hex,
        room_id=room.id,
        player_id=session.player_id,
        round=room.current_round,
        chain_index=chain.chain_index,
        prompt=task.prompt,
        canvas_data=msg.data.canvasData,
        image_url=msg.data.imageUrl,
        time_spent=elapsed_sec(room.phase_started_at, ts),
        created_at=ts,
    ))
    await repo.append_step(chain.id, Step(
        type=StepType.DRAWING,
        player_id=session.player_id,
        content=msg.data.imageUrl,
        round=room.current_round,
        timestamp=ts,
    ))
    logger.debug("drawing submitted room=%s player=%s chain=%s", room.id, session.player_id, chain.chain_index)
    return await _finish(app, room, session.player_id, OutDrawingSubmitted)


async def handle_submit_guess(*, app, session: Session, msg: InSubmitGuess) -> Result:
    repo = app.state.repo
    room, errors = await _submitter(repo, session, msg.data.roomId, GamePhase.GUESSING)
    if errors:
        return errors, []

    chain = await chain_for_player(repo, room, session.player_id)
    if chain is None:
        return [OutError(code="CHAIN_NOT_FOUND", message="Chain not found")], []

    drawings = await repo.get_drawings_by_round(room.id, room.current_round - 1)
    task = resolve_task(
        chain=chain, phase=room.current_phase, current_round=room.current_round, drawings=drawings
    )
    if task is None or not task.drawing_id:
        return [OutError(code="NO_TASK", message="No drawing found for this player")], []

    ts = now_ms()
    await repo.create_guess(Guess(
        id=uuid.uuid4().hex,
        room_id=room.id,
        player_id=session.player_id,
        drawing_id=task.drawing_id,
        round=room.current_round,
        chain_index=chain.chain_index,
        guess=msg.data.guess,
        points=0,
        time_spent=elapsed_sec(room.phase_started_at, ts),
        created_at=ts,
    ))
    await repo.append_step(chain.id, Step(
        type=StepType.GUESS,
        player_id=session.player_id,
        content=msg.data.guess,
        round=room.current_round,
        timestamp=ts,
    ))
    logger.debug("guess submitted room=%s player=%s chain=%s", room.id, session.player_id, chain.chain_index)
    return await _finish(app, room, session.player_id, OutGuessSubmitted)
