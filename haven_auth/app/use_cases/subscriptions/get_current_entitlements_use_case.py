from datetime import datetime
from typing import Callable
from uuid import UUID

from haven_auth.app.services.entitlements import Entitlements, SubscriptionEntitlementEngine
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.libs.result import Error, Result, Return


class GetCurrentEntitlementsUseCase:
    """The "what can this organization do right now" read for UI clients."""

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(self, organization_id: UUID) -> Result[Entitlements]:
        async with self.uow:
            entitlements = await SubscriptionEntitlementEngine(
                self.uow, self._clock
            ).current_entitlements(organization_id)
            if entitlements is None:
                return Return.err(Error("ORGANIZATION_NOT_FOUND", "Organization not found"))
            return Return.ok(entitlements)
