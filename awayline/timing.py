"""Clock and check-interval schedule shared by the async components."""
from __future__ import annotations

import asyncio
import time


class Clock:
    """Monotonic time for intervals, wall time for persisted timestamps."""

    def now(self) -> float:
        return time.monotonic()

    def wall_ms(self) -> int:
        return int(time.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(seconds, 0.0))


class CheckInterval:
    """Linear backoff: start, start+step, ... capped at ceiling.

    Governs how often a local deadline is re-evaluated, not how events
    arrive.
    """

    def __init__(self, start: float = 0.1, step: float = 0.1, ceiling: float = 1.0) -> None:
        if start <= 0 or step < 0 or ceiling < start:
            raise ValueError(f"Invalid check interval: start={start} step={step} ceiling={ceiling}")
        self.start = start
        self.step = step
        self.ceiling = ceiling
        self._current = start

    def next(self) -> float:
        """Return the current interval and advance the schedule."""
        value = self._current
        self._current = min(round(self._current + self.step, 6), self.ceiling)
        return value
