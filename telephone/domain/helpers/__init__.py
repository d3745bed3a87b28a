from __future__ import annotations

from .rotation import (
    chain_index_for,
    completed_cycles,
    resolve_task,
    rotation_amount,
)

__all__ = [
    "chain_index_for",
    "completed_cycles",
    "resolve_task",
    "rotation_amount",
]
