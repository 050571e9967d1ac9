"""
Apply Subscription Event Use Case

The only writer of subscription status. Billing events arrive from the
billing collaborator (X-Admin-API-Key) already verified; this use case
applies their effect through the transition table.
"""

from datetime import datetime
from typing import Callable, Dict, FrozenSet
from uuid import UUID

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import Organization, RiskLevel, SubscriptionStatus
from haven_auth.domain.plans import PLAN_CATALOG
from haven_auth.libs.result import Error, Result, Return
from .dtos import SubscriptionEventCommand, SubscriptionEventType, SubscriptionStateResponse

S = SubscriptionStatus

ALLOWED_TRANSITIONS: Dict[SubscriptionStatus, FrozenSet[SubscriptionStatus]] = {
    S.trial: frozenset({S.active, S.past_due, S.cancelled, S.paused}),
    S.active: frozenset({S.past_due, S.cancelled, S.paused}),
    S.past_due: frozenset({S.active, S.cancelled}),
    S.paused: frozenset({S.cancelled}),
    S.cancelled: frozenset(),
}

EVENT_TARGET_STATUS: Dict[SubscriptionEventType, SubscriptionStatus] = {
    SubscriptionEventType.activated: S.active,
    SubscriptionEventType.payment_failed: S.past_due,
    SubscriptionEventType.renewed: S.active,
    SubscriptionEventType.cancelled: S.cancelled,
    SubscriptionEventType.paused: S.paused,
}

# Events that may leave the status as it is
STATUS_PRESERVING_EVENTS = frozenset(
    {SubscriptionEventType.renewed, SubscriptionEventType.tier_changed}
)


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def apply_plan(organization: Organization, tier) -> None:
    plan = PLAN_CATALOG[tier]
    organization.subscription_tier = plan.tier
    organization.features_enabled = dict(plan.features)
    organization.max_residents = plan.max_residents
    organization.max_properties = plan.max_properties


class ApplySubscriptionEventUseCase:
    """
    Business Rules:
    - Status moves only along ALLOWED_TRANSITIONS
    - renewed on an active subscription extends the period without a
      status change; tier_changed never changes status
    - A tier change replaces features and ceilings with the plan defaults
    - Every applied or rejected event is audit-logged with actor "system"
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(
        self, organization_id: UUID, command: SubscriptionEventCommand
    ) -> Result[SubscriptionStateResponse]:
        now = self._clock()

        async with self.uow:
            ledger = AuditLedger(self.uow)
            organization = await self.uow.organizations.get_by_id(organization_id)
            if organization is None:
                return Return.err(Error("ORGANIZATION_NOT_FOUND", "Organization not found"))

            if command.event_type == SubscriptionEventType.tier_changed and command.tier is None:
                return Return.err(Error("TIER_REQUIRED", "tier_changed events must name a tier"))

            current = SubscriptionStatus(organization.subscription_status)
            target = EVENT_TARGET_STATUS.get(command.event_type, current)
            if target == current:
                allowed = (
                    command.event_type in STATUS_PRESERVING_EVENTS and current != S.cancelled
                )
            else:
                allowed = can_transition(current, target)

            if not allowed:
                await ledger.record(
                    "subscription_event_rejected",
                    organization_id=organization.id,
                    risk_level=RiskLevel.medium,
                    metadata={
                        "event_type": command.event_type.value,
                        "from_status": current.value,
                        "to_status": target.value,
                        "external_event_id": command.external_event_id,
                    },
                )
                await self.uow.commit()
                return Return.err(
                    Error(
                        "INVALID_SUBSCRIPTION_TRANSITION",
                        f"Cannot apply {command.event_type.value} to a {current.value} subscription",
                        currentStatus=current.value,
                    )
                )

            previous_tier = organization.subscription_tier
            organization.subscription_status = target
            if command.tier is not None:
                apply_plan(organization, command.tier)

            if command.event_type == SubscriptionEventType.activated:
                organization.subscription_start_date = organization.subscription_start_date or now
                organization.billing_cycle_anchor = now
            if command.current_period_end is not None:
                organization.subscription_end_date = command.current_period_end
            elif command.event_type == SubscriptionEventType.cancelled:
                organization.subscription_end_date = now

            organization = await self.uow.organizations.update(organization)
            await ledger.record(
                f"subscription_{command.event_type.value}",
                organization_id=organization.id,
                risk_level=RiskLevel.medium,
                metadata={
                    "from_status": current.value,
                    "to_status": target.value,
                    "from_tier": getattr(previous_tier, "value", previous_tier),
                    "to_tier": getattr(
                        organization.subscription_tier, "value", organization.subscription_tier
                    ),
                    "external_event_id": command.external_event_id,
                },
            )
            await self.uow.commit()

            return Return.ok(
                SubscriptionStateResponse(
                    organization_id=str(organization.id),
                    subscription_tier=organization.subscription_tier,
                    subscription_status=target.value,
                    previous_status=current.value,
                    subscription_end_date=organization.subscription_end_date,
                )
            )
