from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from haven_auth.domain.entities import PasswordResetToken


class IPasswordResetTokenRepository(ABC):
    """PasswordResetToken repository interface - application layer"""

    @abstractmethod
    async def create(self, token: PasswordResetToken) -> PasswordResetToken:
        pass

    @abstractmethod
    async def get_by_token_hash(self, token_hash: str) -> Optional[PasswordResetToken]:
        pass

    @abstractmethod
    async def mark_used(self, token_id: UUID) -> bool:
        """
        Flip used to true only if it is still false.

        Returns:
            False when another request already consumed the token
        """
        pass
