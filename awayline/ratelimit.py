"""Rate limiting for outbound Telegram API calls."""
from __future__ import annotations

import asyncio
from collections import deque

from awayline._log import log
from awayline.timing import Clock

MINUTE_WINDOW = 60.0
BURST_WINDOW = 1.0


class RateLimiter:
    """Sliding-window limiter: a sustained per-minute cap plus a per-second burst cap.

    Both windows are pruned on every evaluation, burst window first.
    Waiters are served in arrival order; throttle() only ever delays.
    """

    def __init__(self, messages_per_minute: int = 20, burst_size: int = 5, clock: Clock | None = None) -> None:
        self.messages_per_minute = messages_per_minute
        self.burst_size = burst_size
        self._clock = clock or Clock()
        self._minute: deque[float] = deque()
        self._burst: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._minute and now - self._minute[0] >= MINUTE_WINDOW:
            self._minute.popleft()
        while self._burst and now - self._burst[0] >= BURST_WINDOW:
            self._burst.popleft()

    def _wait_time(self, now: float) -> float:
        """Seconds until one more call fits both windows (0 if it fits now)."""
        self._prune(now)
        if len(self._burst) >= self.burst_size:
            return BURST_WINDOW - (now - self._burst[0])
        if len(self._minute) >= self.messages_per_minute:
            return MINUTE_WINDOW - (now - self._minute[0])
        return 0.0

    async def throttle(self) -> None:
        """Suspend until another call would stay within both caps, then record it."""
        async with self._lock:
            while True:
                now = self._clock.now()
                wait = self._wait_time(now)
                if wait <= 0:
                    break
                if len(self._burst) < self.burst_size:
                    log(f"Rate limit reached ({self.messages_per_minute}/min), waiting {wait:.1f}s")
                await self._clock.sleep(wait)
            self._minute.append(now)
            self._burst.append(now)

    def stats(self) -> dict[str, int]:
        """Current window occupancy."""
        self._prune(self._clock.now())
        return {
            "calls_last_minute": len(self._minute),
            "calls_last_second": len(self._burst),
            "messages_per_minute": self.messages_per_minute,
            "burst_size": self.burst_size,
        }
