from typing import List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.app.repositories.membership_repository import IMembershipRepository
from haven_auth.domain.entities import Membership, MembershipStatus


class MembershipRepository(IMembershipRepository):
    """Membership repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_and_organization(
        self, user_id: UUID, organization_id: UUID
    ) -> Optional[Membership]:
        stmt = select(Membership).where(
            Membership.user_id == user_id,
            Membership.organization_id == organization_id,
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> List[Membership]:
        stmt = select(Membership).where(Membership.user_id == user_id)
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, membership: Membership) -> Membership:
        self.session.add(membership)
        await self.session.flush()
        await self.session.refresh(membership)
        return membership

    async def update(self, membership: Membership) -> Membership:
        self.session.add(membership)
        await self.session.flush()
        await self.session.refresh(membership)
        return membership

    async def count_active(self) -> int:
        stmt = (
            select(func.count())
            .select_from(Membership)
            .where(Membership.status == MembershipStatus.active)
        )
        result = await self.session.exec(stmt)
        return result.one()
