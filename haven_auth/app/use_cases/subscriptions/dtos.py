from datetime import UTC, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from haven_auth.domain.entities import ResourceKind, SubscriptionTier


class SubscriptionEventType(str, Enum):
    activated = "activated"
    payment_failed = "payment_failed"
    renewed = "renewed"
    cancelled = "cancelled"
    paused = "paused"
    tier_changed = "tier_changed"


class SubscriptionEventCommand(BaseModel):
    """Effect of one billing-provider event on an organization"""

    event_type: SubscriptionEventType
    tier: Optional[SubscriptionTier] = None
    current_period_end: Optional[datetime] = None
    external_event_id: Optional[str] = None

    @field_validator("current_period_end")
    @classmethod
    def _to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Stored timestamps are naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(UTC).replace(tzinfo=None)
        return value


class SubscriptionStateResponse(BaseModel):
    organization_id: str
    subscription_tier: SubscriptionTier
    subscription_status: str
    previous_status: str
    subscription_end_date: Optional[datetime] = None


class UsageResponse(BaseModel):
    organization_id: str
    resource_kind: ResourceKind
    current: int
    max: Optional[int] = None
