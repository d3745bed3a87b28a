# telephone/domain/common/modes.py
from __future__ import annotations

from dataclasses import dataclass

from telephone.store.models import GameMode


@dataclass(frozen=True)
class ModeConfig:
    drawing_time: int
    guessing_time: int
    min_players: int = 4
    max_players: int = 15
    hidden_prompts: bool = False


# Timings only; rotation and phase rules are the same in every mode.
GAME_MODE_CONFIGS: dict[GameMode, ModeConfig] = {
    GameMode.NORMAL: ModeConfig(drawing_time=180, guessing_time=60),
    GameMode.SECRET: ModeConfig(drawing_time=180, guessing_time=60, hidden_prompts=True),
    GameMode.SCORE: ModeConfig(drawing_time=180, guessing_time=60),
    GameMode.MASTERPIECE: ModeConfig(drawing_time=600, guessing_time=120, max_players=12),
}


def mode_config(mode: GameMode) -> ModeConfig:
    return GAME_MODE_CONFIGS[mode]
