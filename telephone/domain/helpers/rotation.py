from __future__ import annotations

from typing import Iterable, Optional

from telephone.store.models import Drawing, GameChain, GamePhase, Step, StepType, Task


def rotation_amount(current_round: int) -> int:
    """How many seats a chain has moved away from its owner in this round."""
    return current_round // 2


def completed_cycles(current_round: int) -> int:
    """Draw/guess cycles finished once the phase at `current_round` completes."""
    return current_round // 2


def chain_index_for(player_index: int, current_round: int, phase: GamePhase, player_count: int) -> int:
    """
    Map a player's seat to the chain they work on this round.

    Writing: every player seeds their own chain.
    Drawing/guessing: chains rotate by rotation_amount(current_round) seats.
    For a fixed round this is a permutation of range(player_count).
    """
    if player_count <= 0:
        raise ValueError("player_count must be positive")
    if not 0 <= player_index < player_count:
        raise ValueError(f"player_index {player_index} out of range for {player_count} players")

    if phase == GamePhase.WRITING:
        return player_index
    if phase in (GamePhase.DRAWING, GamePhase.GUESSING):
        return (player_index + rotation_amount(current_round)) % player_count
    raise ValueError(f"No chain assignment in phase {phase.value}")


def latest_text_step(chain: GameChain) -> Optional[Step]:
    for step in reversed(chain.steps):
        if step.type in (StepType.PROMPT, StepType.GUESS):
            return step
    return None


def drawing_step_for_round(chain: GameChain, round_no: int) -> Optional[Step]:
    for step in reversed(chain.steps):
        if step.type == StepType.DRAWING and step.round == round_no:
            return step
    return None


def resolve_task(
    *,
    chain: Optional[GameChain],
    phase: GamePhase,
    current_round: int,
    drawings: Iterable[Drawing] = (),
) -> Optional[Task]:
    """
    Turn a chain position into concrete work.
    Returns None ("no task") when the chain or the step it depends on is missing.
    """
    if chain is None:
        return None

    if phase == GamePhase.WRITING:
        return Task(chain_index=chain.chain_index)

    if phase == GamePhase.DRAWING:
        step = latest_text_step(chain)
        if step is None:
            return None
        return Task(chain_index=chain.chain_index, prompt=step.content)

    if phase == GamePhase.GUESSING:
        step = drawing_step_for_round(chain, current_round - 1)
        if step is None:
            return None
        for d in drawings:
            if d.player_id == step.player_id and d.image_url == step.content and d.round == step.round:
                return Task(
                    chain_index=chain.chain_index,
                    drawing_image_url=step.content,
                    drawing_id=d.id,
                )
        return None

    return None
