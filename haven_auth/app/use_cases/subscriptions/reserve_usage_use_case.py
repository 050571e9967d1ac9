"""
Usage slot reservation.

Create-type business routes reserve a slot before inserting a resident or
property and release it when the record is removed (or the insert fails).
Both directions are single conditional UPDATEs.
"""

from datetime import datetime
from typing import Callable
from uuid import UUID

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.entitlements import SubscriptionEntitlementEngine, quota_error
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import AuditOutcome, ResourceKind, RiskLevel
from haven_auth.libs.result import Error, Result, Return
from .dtos import UsageResponse


class ReserveUsageUseCase:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(
        self, organization_id: UUID, kind: ResourceKind, user_id: str
    ) -> Result[UsageResponse]:
        async with self.uow:
            engine = SubscriptionEntitlementEngine(self.uow, self._clock)
            reserved = await engine.reserve(organization_id, kind)
            entitlements = await engine.current_entitlements(organization_id)
            if entitlements is None:
                return Return.err(Error("ORGANIZATION_NOT_FOUND", "Organization not found"))

            if not reserved:
                # Lost a race to the ceiling after the quota gate passed
                await AuditLedger(self.uow).record(
                    "quota_exceeded",
                    user_id=user_id,
                    organization_id=organization_id,
                    resource=kind.value,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.low,
                )
                await self.uow.commit()
                return Return.err(quota_error(entitlements, kind))

            await self.uow.commit()
            limit = entitlements.limits[kind]
            return Return.ok(
                UsageResponse(
                    organization_id=str(organization_id),
                    resource_kind=kind,
                    current=limit.current,
                    max=limit.max,
                )
            )


class ReleaseUsageUseCase:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(self, organization_id: UUID, kind: ResourceKind) -> Result[UsageResponse]:
        async with self.uow:
            engine = SubscriptionEntitlementEngine(self.uow, self._clock)
            released = await engine.release(organization_id, kind)
            entitlements = await engine.current_entitlements(organization_id)
            if entitlements is None:
                return Return.err(Error("ORGANIZATION_NOT_FOUND", "Organization not found"))
            if not released:
                return Return.err(Error("NOTHING_TO_RELEASE", f"No {kind.value} usage to release"))

            await self.uow.commit()
            limit = entitlements.limits[kind]
            return Return.ok(
                UsageResponse(
                    organization_id=str(organization_id),
                    resource_kind=kind,
                    current=limit.current,
                    max=limit.max,
                )
            )
