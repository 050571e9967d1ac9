"""
Fixed-window rate limiter backed by the shared store.

Keys are "<scope>:<subject>:<window index>", so every API process sees the
same counters and a new window simply starts a new row.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Tuple

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow

_EPOCH = datetime(1970, 1, 1)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    limit: int
    retry_after: int


class RateLimiter:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    def _window(self, scope: str, subject: str, window: timedelta) -> Tuple[str, datetime, datetime, datetime]:
        now = self._clock()
        window_seconds = int(window.total_seconds())
        index = int((now - _EPOCH).total_seconds()) // window_seconds
        window_start = _EPOCH + timedelta(seconds=index * window_seconds)
        return f"{scope}:{subject}:{index}", now, window_start, window_start + window

    @staticmethod
    def _retry_after(now: datetime, window_end: datetime) -> int:
        return max(1, math.ceil((window_end - now).total_seconds()))

    async def hit(self, scope: str, subject: str, limit: int, window: timedelta) -> RateLimitDecision:
        """Count one attempt; allowed while the count stays within limit."""
        key, now, window_start, window_end = self._window(scope, subject, window)
        count = await self.uow.rate_limits.hit(key, window_start, window_end)
        return RateLimitDecision(
            allowed=count <= limit,
            count=count,
            limit=limit,
            retry_after=self._retry_after(now, window_end),
        )

    async def release(self, scope: str, subject: str, window: timedelta) -> None:
        """Give back one hit in the current window, for attempts that turned out fine."""
        key, _, _, _ = self._window(scope, subject, window)
        await self.uow.rate_limits.release(key)
