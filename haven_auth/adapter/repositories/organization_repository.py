from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.app.repositories.organization_repository import IOrganizationRepository
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import Organization, ResourceKind


def _usage_columns(kind: ResourceKind):
    if ResourceKind(kind) == ResourceKind.residents:
        return Organization.current_resident_count, Organization.max_residents
    return Organization.current_property_count, Organization.max_properties


class OrganizationRepository(IOrganizationRepository):
    """Organization repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, organization_id: UUID) -> Optional[Organization]:
        # Usage counters change through bulk UPDATEs; reload over the identity map
        stmt = (
            select(Organization)
            .where(Organization.id == organization_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def get_many(self, organization_ids: List[UUID]) -> List[Organization]:
        if not organization_ids:
            return []
        stmt = select(Organization).where(Organization.id.in_(organization_ids))
        result = await self.session.exec(stmt)
        return list(result.all())

    async def create(self, organization: Organization) -> Organization:
        self.session.add(organization)
        await self.session.flush()
        await self.session.refresh(organization)
        return organization

    async def update(self, organization: Organization) -> Organization:
        organization.updated_at = utcnow()
        self.session.add(organization)
        await self.session.flush()
        await self.session.refresh(organization)
        return organization

    async def reserve_usage(self, organization_id: UUID, kind: ResourceKind) -> bool:
        current, ceiling = _usage_columns(kind)
        stmt = (
            update(Organization)
            .where(
                Organization.id == organization_id,
                or_(ceiling.is_(None), current < ceiling),
            )
            .values({current: current + 1, Organization.updated_at: utcnow()})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def release_usage(self, organization_id: UUID, kind: ResourceKind) -> bool:
        current, _ = _usage_columns(kind)
        stmt = (
            update(Organization)
            .where(Organization.id == organization_id, current > 0)
            .values({current: current - 1, Organization.updated_at: utcnow()})
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def count_by_subscription_status(self) -> Dict[str, int]:
        stmt = select(Organization.subscription_status, func.count()).group_by(
            Organization.subscription_status
        )
        result = await self.session.exec(stmt)
        return {getattr(status, "value", status): count for status, count in result.all()}

    async def count_by_tier(self) -> Dict[str, int]:
        stmt = select(Organization.subscription_tier, func.count()).group_by(
            Organization.subscription_tier
        )
        result = await self.session.exec(stmt)
        return {getattr(tier, "value", tier): count for tier, count in result.all()}

    async def usage_totals(self) -> Dict[str, int]:
        stmt = select(
            func.coalesce(func.sum(Organization.current_resident_count), 0),
            func.coalesce(func.sum(Organization.current_property_count), 0),
        )
        result = await self.session.exec(stmt)
        residents, properties = result.one()
        return {"residents": int(residents), "properties": int(properties)}
