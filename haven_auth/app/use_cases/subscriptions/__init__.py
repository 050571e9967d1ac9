"""
Subscription Use Cases

Entitlement reads, billing-event intake and usage counters.
"""

from .get_current_entitlements_use_case import GetCurrentEntitlementsUseCase
from .apply_subscription_event_use_case import ApplySubscriptionEventUseCase
from .reserve_usage_use_case import ReleaseUsageUseCase, ReserveUsageUseCase
from .dtos import (
    SubscriptionEventCommand,
    SubscriptionEventType,
    SubscriptionStateResponse,
    UsageResponse,
)

__all__ = [
    "GetCurrentEntitlementsUseCase",
    "ApplySubscriptionEventUseCase",
    "ReserveUsageUseCase",
    "ReleaseUsageUseCase",
    "SubscriptionEventCommand",
    "SubscriptionEventType",
    "SubscriptionStateResponse",
    "UsageResponse",
]
