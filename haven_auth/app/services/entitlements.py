"""
Subscription Entitlement Engine

current_entitlements() is the single storage read; every other check is a
pure function over the Entitlements it returns (or over the snapshot
carried in an access token).

Lazy expiry: a stored trial whose trial_end_date has passed, or any
subscription whose subscription_end_date has passed, evaluates as
cancelled even before the billing collaborator updates the row.
"""

from datetime import datetime
from typing import Callable, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import (
    Organization,
    ResourceKind,
    SubscriptionStatus,
    SubscriptionTier,
)
from haven_auth.domain.plans import PLAN_CATALOG, TIER_ORDER
from haven_auth.libs.result import Error

ACTIVE_STATUSES = frozenset({SubscriptionStatus.trial, SubscriptionStatus.active})

QUOTA_ERROR_CODES = {
    ResourceKind.residents: "Resident limit reached",
    ResourceKind.properties: "Property limit reached",
}


class UsageLimit(BaseModel):
    current: int
    max: Optional[int] = None


class Entitlements(BaseModel):
    organization_id: str
    tier: SubscriptionTier
    status: SubscriptionStatus
    features: Dict[str, bool] = Field(default_factory=dict)
    limits: Dict[ResourceKind, UsageLimit] = Field(default_factory=dict)
    trial_end_date: Optional[datetime] = None
    subscription_end_date: Optional[datetime] = None


def effective_status(organization: Organization, now: datetime) -> SubscriptionStatus:
    status = SubscriptionStatus(organization.subscription_status)
    if (
        status == SubscriptionStatus.trial
        and organization.trial_end_date is not None
        and organization.trial_end_date < now
    ):
        return SubscriptionStatus.cancelled
    if (
        organization.subscription_end_date is not None
        and organization.subscription_end_date < now
    ):
        return SubscriptionStatus.cancelled
    return status


def entitlements_for(organization: Organization, now: datetime) -> Entitlements:
    return Entitlements(
        organization_id=str(organization.id),
        tier=organization.subscription_tier,
        status=effective_status(organization, now),
        features=dict(organization.features_enabled or {}),
        limits={
            ResourceKind.residents: UsageLimit(
                current=organization.current_resident_count,
                max=organization.max_residents,
            ),
            ResourceKind.properties: UsageLimit(
                current=organization.current_property_count,
                max=organization.max_properties,
            ),
        },
        trial_end_date=organization.trial_end_date,
        subscription_end_date=organization.subscription_end_date,
    )


def has_feature(entitlements: Entitlements, name: str) -> bool:
    """Exact-match lookup; a missing key is False."""
    return entitlements.features.get(name) is True


def meets_tier(entitlements: Entitlements, min_tier) -> bool:
    try:
        required = SubscriptionTier(min_tier)
    except ValueError:
        return False
    return TIER_ORDER[entitlements.tier] >= TIER_ORDER[required]


def within_quota(entitlements: Entitlements, kind: ResourceKind) -> bool:
    """A missing limit entry is denied; max=None is unlimited."""
    limit = entitlements.limits.get(ResourceKind(kind))
    if limit is None:
        return False
    return limit.max is None or limit.current < limit.max


def is_subscription_active(entitlements: Entitlements) -> bool:
    return entitlements.status in ACTIVE_STATUSES


def upgrade_tier_for(entitlements: Entitlements, kind: ResourceKind) -> Optional[SubscriptionTier]:
    """Cheapest tier above the current one with a higher ceiling for kind."""
    current = entitlements.limits[kind].max
    for tier in sorted(TIER_ORDER, key=TIER_ORDER.get):
        if TIER_ORDER[tier] <= TIER_ORDER[entitlements.tier]:
            continue
        plan = PLAN_CATALOG[tier]
        ceiling = plan.max_residents if kind == ResourceKind.residents else plan.max_properties
        if ceiling is None or (current is not None and ceiling > current):
            return tier
    return None


def quota_error(entitlements: Entitlements, kind: ResourceKind) -> Error:
    kind = ResourceKind(kind)
    limit = entitlements.limits[kind]
    upgrade = upgrade_tier_for(entitlements, kind)
    return Error(
        QUOTA_ERROR_CODES[kind],
        f"Your {entitlements.tier.value} plan allows {limit.max} {kind.value}",
        currentCount=limit.current,
        maxAllowed=limit.max,
        requiredUpgrade=upgrade.value if upgrade else None,
    )


class SubscriptionEntitlementEngine:
    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def current_entitlements(self, organization_id: UUID) -> Optional[Entitlements]:
        organization = await self.uow.organizations.get_by_id(organization_id)
        if organization is None:
            return None
        return entitlements_for(organization, self._clock())

    async def reserve(self, organization_id: UUID, kind: ResourceKind) -> bool:
        return await self.uow.organizations.reserve_usage(organization_id, kind)

    async def release(self, organization_id: UUID, kind: ResourceKind) -> bool:
        return await self.uow.organizations.release_usage(organization_id, kind)
