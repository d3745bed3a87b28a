import pytest

from telephone.domain.helpers import chain_index_for, completed_cycles, resolve_task, rotation_amount
from telephone.store.models import Drawing, GameChain, GamePhase, Step, StepType


def _chain(steps, idx=0):
    return GameChain(id="ch", room_id="r", chain_index=idx, steps=steps)


def _step(kind, pid, content, rnd):
    return Step(type=kind, player_id=pid, content=content, round=rnd, timestamp=0)


@pytest.mark.parametrize("n", range(4, 16))
def test_assignment_is_a_permutation_every_round(n):
    for rnd in range(1, 14):
        for phase in (GamePhase.WRITING, GamePhase.DRAWING, GamePhase.GUESSING):
            got = sorted(chain_index_for(i, rnd, phase, n) for i in range(n))
            assert got == list(range(n))


def test_writing_keeps_own_chain():
    assert [chain_index_for(i, 1, GamePhase.WRITING, 4) for i in range(4)] == [0, 1, 2, 3]


def test_four_player_drawing_round_two():
    # after prompts: P0 draws chain 1, P1 chain 2, P2 chain 3, P3 chain 0
    assert [chain_index_for(i, 2, GamePhase.DRAWING, 4) for i in range(4)] == [1, 2, 3, 0]


def test_rotation_grows_every_other_round():
    assert [rotation_amount(r) for r in range(1, 7)] == [0, 1, 1, 2, 2, 3]
    assert completed_cycles(2) == 1
    assert completed_cycles(3) == 1
    assert completed_cycles(4) == 2


def test_chain_index_rejects_bad_input():
    with pytest.raises(ValueError):
        chain_index_for(4, 2, GamePhase.DRAWING, 4)
    with pytest.raises(ValueError):
        chain_index_for(0, 2, GamePhase.DRAWING, 0)
    with pytest.raises(ValueError):
        chain_index_for(0, 2, GamePhase.LOBBY, 4)


def test_resolve_writing_task_has_no_inputs():
    task = resolve_task(chain=_chain([], idx=2), phase=GamePhase.WRITING, current_round=1)
    assert task.chain_index == 2
    assert task.prompt is None
    assert task.drawing_id is None


def test_resolve_drawing_task_uses_latest_text():
    chain = _chain([
        _step(StepType.PROMPT, "p0", "a cat", 1),
        _step(StepType.DRAWING, "p1", "img-1", 2),
        _step(StepType.GUESS, "p2", "a dog", 3),
    ])
    task = resolve_task(chain=chain, phase=GamePhase.DRAWING, current_round=4)
    assert task.prompt == "a dog"


def test_resolve_drawing_task_without_text_is_none():
    assert resolve_task(chain=_chain([]), phase=GamePhase.DRAWING, current_round=2) is None
    assert resolve_task(chain=None, phase=GamePhase.DRAWING, current_round=2) is None


def test_resolve_guessing_task_matches_previous_round_drawing():
    chain = _chain([
        _step(StepType.PROMPT, "p0", "a cat", 1),
        _step(StepType.DRAWING, "p1", "img-1", 2),
    ])
    drawings = [
        Drawing(id="d-other", room_id="r", player_id="p2", round=2, chain_index=1, prompt="x",
                canvas_data="", image_url="img-2"),
        Drawing(id="d1", room_id="r", player_id="p1", round=2, chain_index=0, prompt="a cat",
                canvas_data="", image_url="img-1"),
    ]
    task = resolve_task(chain=chain, phase=GamePhase.GUESSING, current_round=3, drawings=drawings)
    assert task.drawing_id == "d1"
    assert task.drawing_image_url == "img-1"


def test_resolve_guessing_task_without_record_is_none():
    chain = _chain([
        _step(StepType.PROMPT, "p0", "a cat", 1),
        _step(StepType.DRAWING, "p1", "img-1", 2),
    ])
    assert resolve_task(chain=chain, phase=GamePhase.GUESSING, current_round=3, drawings=[]) is None
