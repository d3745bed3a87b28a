import pytest

from telephone.domain.common.fsm import can_transition_phase, next_phase
from telephone.store.models import GamePhase


def test_transitions():
    assert can_transition_phase(GamePhase.LOBBY, GamePhase.WRITING)
    assert can_transition_phase(GamePhase.DRAWING, GamePhase.RESULTS)
    assert not can_transition_phase(GamePhase.WRITING, GamePhase.GUESSING)
    assert not can_transition_phase(GamePhase.RESULTS, GamePhase.LOBBY)


def test_next_phase_cycle():
    assert next_phase(GamePhase.WRITING, 1, 3) == GamePhase.DRAWING
    assert next_phase(GamePhase.DRAWING, 2, 3) == GamePhase.GUESSING
    assert next_phase(GamePhase.GUESSING, 3, 3) == GamePhase.DRAWING


def test_drawing_ends_game_after_last_cycle():
    assert next_phase(GamePhase.DRAWING, 2, 1) == GamePhase.RESULTS
    assert next_phase(GamePhase.DRAWING, 4, 3) == GamePhase.GUESSING
    assert next_phase(GamePhase.DRAWING, 6, 3) == GamePhase.RESULTS


def test_untimed_phases_do_not_advance():
    with pytest.raises(ValueError):
        next_phase(GamePhase.LOBBY, 0, 3)
    with pytest.raises(ValueError):
        next_phase(GamePhase.RESULTS, 6, 3)
