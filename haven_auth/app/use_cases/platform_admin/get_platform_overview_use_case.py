"""
Get Platform Overview Use Case

Cross-tenant aggregates for platform operators. Only reachable behind the
platform-operator gate.
"""

from datetime import datetime
from typing import Callable

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import PLATFORM_ADMIN_ROLE
from haven_auth.libs.result import Result, Return
from .dtos import PlatformOverviewResponse


class GetPlatformOverviewUseCase:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(self) -> Result[PlatformOverviewResponse]:
        async with self.uow:
            by_status = await self.uow.organizations.count_by_subscription_status()
            by_tier = await self.uow.organizations.count_by_tier()

            return Return.ok(
                PlatformOverviewResponse(
                    total_organizations=sum(by_status.values()),
                    organizations_by_status=by_status,
                    organizations_by_tier=by_tier,
                    active_memberships=await self.uow.memberships.count_active(),
                    platform_admins=await self.uow.users.count_by_role(PLATFORM_ADMIN_ROLE),
                    usage_totals=await self.uow.organizations.usage_totals(),
                    high_risk_events_24h=await self.uow.audit_events.count_recent_high_risk(24),
                    generated_at=self._clock().isoformat() + "Z",
                )
            )
