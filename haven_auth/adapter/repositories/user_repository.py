from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, case, func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.app.repositories.user_repository import IUserRepository
from haven_auth.domain.entities import User


class UserRepository(IUserRepository):
    """User repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address"""
        stmt = select(User).where(User.email == email)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID"""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_external_subject(
        self, auth_method: str, subject: str
    ) -> Optional[User]:
        stmt = select(User).where(
            User.auth_method == auth_method, User.external_subject == subject
        )
        result = await self.session.exec(stmt)
        return result.first()

    async def create(self, user: User) -> User:
        """Create a new user"""
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def update(self, user: User) -> User:
        """Update existing user"""
        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)
        return user

    async def claim_login_attempt(
        self,
        user_id: UUID,
        now: datetime,
        window_start: datetime,
        max_attempts: int,
        locked_until: datetime,
    ) -> Optional[int]:
        """
        Single conditional UPDATE: every SET expression sees the pre-update
        row, and the WHERE clause refuses locked rows, so concurrent attempts
        serialize on the row and no more than max_attempts get a number.
        """
        restart = or_(
            User.last_failed_login_at.is_(None),
            User.last_failed_login_at < window_start,
            and_(User.locked_until.is_not(None), User.locked_until <= now),
        )
        attempts = case((restart, 1), else_=User.failed_login_attempts + 1)
        lock = case(
            (attempts >= max_attempts, locked_until),
            (restart, None),
            else_=User.locked_until,
        )
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                or_(User.locked_until.is_(None), User.locked_until <= now),
            )
            .values(
                failed_login_attempts=attempts,
                last_failed_login_at=now,
                locked_until=lock,
            )
            .returning(User.failed_login_attempts)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def settle_login_attempt(self, user_id: UUID, attempt: int, now: datetime) -> bool:
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                or_(
                    User.locked_until.is_(None),
                    User.locked_until <= now,
                    # The attempt that set the lock may still lift it
                    User.failed_login_attempts == attempt,
                ),
            )
            .values(failed_login_attempts=0, last_failed_login_at=None, locked_until=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def get_locked_until(self, user_id: UUID) -> Optional[datetime]:
        stmt = select(User.locked_until).where(User.id == user_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def clear_failed_logins(self, user_id: UUID, now: datetime) -> None:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                failed_login_attempts=0,
                last_failed_login_at=None,
                locked_until=None,
                last_login_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def count_by_role(self, role: str) -> int:
        stmt = select(func.count()).select_from(User).where(User.role == role)
        result = await self.session.exec(stmt)
        return result.one()
