"""Millisecond clock and pacing used by the traffic generators."""

import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...

    async def sleep(self, ms: float) -> None: ...


class MonotonicClock:
    """Process-local monotonic clock.

    Timestamps only need to be comparable within one analysis run, so the
    monotonic counter replaces wall-clock time and is immune to clock skew.
    """

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000

    async def sleep(self, ms: float) -> None:
        if ms > 0:
            await asyncio.sleep(ms / 1000)
