from abc import ABC, abstractmethod
from datetime import datetime


class IRateLimitRepository(ABC):
    """Fixed-window counters kept in the shared store"""

    @abstractmethod
    async def hit(self, key: str, window_start: datetime, window_end: datetime) -> int:
        """
        Atomically add one hit to the bucket for key, creating it if needed.

        Returns:
            The bucket count after this hit
        """
        pass

    @abstractmethod
    async def release(self, key: str) -> None:
        """Atomically take one hit off the bucket for key, never below zero"""
        pass
