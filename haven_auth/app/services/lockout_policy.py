"""
Lockout Policy

Per-account brute-force protection. Counters live on the user row and
change only through atomic repository updates.

An attempt is claimed before its password hash is compared, so a burst of
parallel requests gets at most max_attempts comparisons per window. A
correct password settles its claim; a wrong one leaves it counted.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.entities import User


class LockoutPolicy:
    def __init__(
        self,
        max_attempts: int = 5,
        lockout_duration: timedelta = timedelta(minutes=30),
        attempt_window: timedelta = timedelta(minutes=30),
    ):
        self.max_attempts = max_attempts
        self.lockout_duration = lockout_duration
        self.attempt_window = attempt_window

    @classmethod
    def from_config(cls, config) -> "LockoutPolicy":
        return cls(
            max_attempts=config.LOCKOUT_MAX_ATTEMPTS,
            lockout_duration=timedelta(minutes=config.LOCKOUT_DURATION_MINUTES),
            attempt_window=timedelta(minutes=config.LOCKOUT_ATTEMPT_WINDOW_MINUTES),
        )

    @staticmethod
    def retry_after_seconds(locked_until: Optional[datetime], now: datetime) -> int:
        if locked_until is None or locked_until <= now:
            return 0
        return max(1, math.ceil((locked_until - now).total_seconds()))

    def locks_account(self, attempt: int) -> bool:
        return attempt >= self.max_attempts

    async def claim_attempt(self, uow: UnitOfWork, user: User, now: datetime) -> Optional[int]:
        """The number of this attempt, or None while the account is locked."""
        return await uow.users.claim_login_attempt(
            user.id,
            now=now,
            window_start=now - self.attempt_window,
            max_attempts=self.max_attempts,
            locked_until=now + self.lockout_duration,
        )

    async def settle_attempt(self, uow: UnitOfWork, user: User, attempt: int, now: datetime) -> bool:
        return await uow.users.settle_login_attempt(user.id, attempt, now)

    async def current_retry_after(self, uow: UnitOfWork, user: User, now: datetime) -> int:
        locked_until = await uow.users.get_locked_until(user.id)
        # A lock that lapsed between the claim and this read still rejects this request
        return max(1, self.retry_after_seconds(locked_until, now))

    async def clear(self, uow: UnitOfWork, user: User, now: datetime) -> None:
        await uow.users.clear_failed_logins(user.id, now)
