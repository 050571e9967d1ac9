from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from haven_auth.domain.entities import User


class IUserRepository(ABC):
    """User repository interface - application layer"""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address"""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        pass

    @abstractmethod
    async def get_by_external_subject(
        self, auth_method: str, subject: str
    ) -> Optional[User]:
        """Get an SSO user by provider kind and provider subject"""
        pass

    @abstractmethod
    async def create(self, user: User) -> User:
        """Create a new user"""
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        """Update existing user"""
        pass

    @abstractmethod
    async def claim_login_attempt(
        self,
        user_id: UUID,
        now: datetime,
        window_start: datetime,
        max_attempts: int,
        locked_until: datetime,
    ) -> Optional[int]:
        """
        Atomically count one password attempt before its hash is compared.

        The counter restarts at 1 when the previous attempt is older than
        window_start or a previous lock has expired. The attempt that
        brings the count to max_attempts locks the account until
        locked_until. A currently locked account is left untouched.

        Returns:
            The number of this attempt, or None if the account is locked
        """
        pass

    @abstractmethod
    async def settle_login_attempt(self, user_id: UUID, attempt: int, now: datetime) -> bool:
        """
        Reset the lockout record after a correct password.

        Returns:
            False if a concurrent failure locked the account meanwhile
        """
        pass

    @abstractmethod
    async def get_locked_until(self, user_id: UUID) -> Optional[datetime]:
        pass

    @abstractmethod
    async def clear_failed_logins(self, user_id: UUID, now: datetime) -> None:
        """Reset the lockout record and stamp last_login_at"""
        pass

    @abstractmethod
    async def count_by_role(self, role: str) -> int:
        pass
