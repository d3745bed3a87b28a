from __future__ import annotations

from .handlers import (
    advance_phase,
    handle_drawing_update,
    handle_phase_timeout,
    handle_start_game,
    handle_submit_drawing,
    handle_submit_guess,
    handle_submit_prompt,
)

__all__ = [
    "advance_phase",
    "handle_drawing_update",
    "handle_phase_timeout",
    "handle_start_game",
    "handle_submit_drawing",
    "handle_submit_guess",
    "handle_submit_prompt",
]
