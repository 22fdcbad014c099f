"""Millisecond clock shared by the governance state machines."""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Monotonic milliseconds; only differences are meaningful."""
    return int(time.monotonic() * 1000)
