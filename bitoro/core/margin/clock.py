"""
Time source for the margin engine.

The minimum-profit-time lockup and ``last_increased_time`` stamping need
"now" in unix seconds. The functional core never reads the system clock
directly: callers pass a ``Clock`` (tests use ``fixed_clock``).
"""

from __future__ import annotations

import math
import time
from typing import Callable

Clock = Callable[[], int]


def system_clock() -> int:
    """Current unix time in whole seconds, rounded up."""
    return math.ceil(time.time())


def fixed_clock(now: int) -> Clock:
    """Return a clock that always reports *now*."""
    if not isinstance(now, int) or isinstance(now, bool) or now < 0:
        raise ValueError(f"now must be a non-negative int, got {now!r}")
    return lambda: now
