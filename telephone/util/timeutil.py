from __future__ import annotations

import time


def now_ms() -> int:
    """Unix time in milliseconds."""
    return int(time.time() * 1000)


def elapsed_sec(start_ms: int, end_ms: int) -> int:
    return max(0, (end_ms - start_ms) // 1000)
