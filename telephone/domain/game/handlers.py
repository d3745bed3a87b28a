# telephone/domain/game/handlers.py
from __future__ import annotations

from telephone.domain.game.handlers_start import handle_start_game
from telephone.domain.game.handlers_draw import handle_drawing_update
from telephone.domain.game.handlers_submit import (
    handle_submit_drawing,
    handle_submit_guess,
    handle_submit_prompt,
)
from telephone.domain.game.handlers_phase import advance_phase, handle_phase_timeout

__all__ = [
    "handle_start_game",
    "handle_drawing_update",
    "handle_submit_prompt",
    "handle_submit_drawing",
    "handle_submit_guess",
    "advance_phase",
    "handle_phase_timeout",
]
