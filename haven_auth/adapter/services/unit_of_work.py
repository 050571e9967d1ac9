from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.adapter.repositories.audit_event_repository import AuditEventRepository
from haven_auth.adapter.repositories.membership_repository import MembershipRepository
from haven_auth.adapter.repositories.organization_repository import OrganizationRepository
from haven_auth.adapter.repositories.password_reset_token_repository import (
    PasswordResetTokenRepository,
)
from haven_auth.adapter.repositories.rate_limit_repository import RateLimitRepository
from haven_auth.adapter.repositories.user_repository import UserRepository
from haven_auth.app.services.unit_of_work import UnitOfWork


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        self.users = UserRepository(self.session)
        self.organizations = OrganizationRepository(self.session)
        self.memberships = MembershipRepository(self.session)
        self.audit_events = AuditEventRepository(self.session)
        self.password_reset_tokens = PasswordResetTokenRepository(self.session)
        self.rate_limits = RateLimitRepository(self.session)
        return self

    async def __aexit__(self, *args):
        # Anything not committed inside the block is discarded
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
