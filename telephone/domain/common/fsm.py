# telephone/domain/common/fsm.py
from __future__ import annotations

from telephone.domain.helpers.rotation import completed_cycles
from telephone.store.models import GamePhase


_TRANSITIONS: dict[GamePhase, list[GamePhase]] = {
    GamePhase.LOBBY: [GamePhase.WRITING],
    GamePhase.WRITING: [GamePhase.DRAWING],
    GamePhase.DRAWING: [GamePhase.GUESSING, GamePhase.RESULTS],
    GamePhase.GUESSING: [GamePhase.DRAWING],
    GamePhase.RESULTS: [],
}

ACTIVE_PHASES = (GamePhase.WRITING, GamePhase.DRAWING, GamePhase.GUESSING)


def can_transition_phase(current: GamePhase, target: GamePhase) -> bool:
    """
    Validate phase transitions.
    """
    return target in _TRANSITIONS.get(current, [])


def next_phase(current: GamePhase, current_round: int, total_rounds: int) -> GamePhase:
    """
    Phase that follows `current` once everybody is done (or time ran out).
    """
    if current == GamePhase.WRITING:
        return GamePhase.DRAWING
    if current == GamePhase.DRAWING:
        if completed_cycles(current_round) >= total_rounds:
            return GamePhase.RESULTS
        return GamePhase.GUESSING
    if current == GamePhase.GUESSING:
        return GamePhase.DRAWING
    raise ValueError(f"Phase {current.value} does not advance automatically")
