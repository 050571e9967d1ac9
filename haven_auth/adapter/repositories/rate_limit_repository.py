from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.app.repositories.rate_limit_repository import IRateLimitRepository
from haven_auth.domain.entities import RateLimitBucket


class RateLimitRepository(IRateLimitRepository):
    """Fixed-window counters as rows; increments happen in SQL"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _increment(self, key: str):
        stmt = (
            update(RateLimitBucket)
            .where(RateLimitBucket.key == key)
            .values(count=RateLimitBucket.count + 1)
            .returning(RateLimitBucket.count)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def hit(self, key: str, window_start: datetime, window_end: datetime) -> int:
        count = await self._increment(key)
        if count is not None:
            return count

        try:
            async with self.session.begin_nested():
                self.session.add(
                    RateLimitBucket(
                        key=key, count=1, window_start=window_start, window_end=window_end
                    )
                )
            return 1
        except IntegrityError:
            # Another request created the bucket first
            return await self._increment(key)

    async def release(self, key: str) -> None:
        stmt = (
            update(RateLimitBucket)
            .where(RateLimitBucket.key == key, RateLimitBucket.count > 0)
            .values(count=RateLimitBucket.count - 1)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
