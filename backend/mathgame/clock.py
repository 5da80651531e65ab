from __future__ import annotations

import time
from typing import Optional, Protocol


class Clock(Protocol):
    """Source of monotonic seconds for question countdowns.

    ``GameSession`` never calls ``time`` directly, so tests can drive the
    countdown by hand.
    """

    def now(self) -> float:
        ...


class RealClock:
    def now(self) -> float:
        return time.monotonic()


def elapsed_since(clock: Clock, started_at: Optional[float]) -> float:
    """Seconds since ``started_at``; 0.0 when nothing is being timed."""
    if started_at is None:
        return 0.0
    return max(0.0, clock.now() - started_at)
