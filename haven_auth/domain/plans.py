"""
Plan catalog: what each subscription tier includes by default.

The catalog seeds an organization's feature map and ceilings when it is
created or changes tier; afterwards the organization row is authoritative.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from haven_auth.domain.entities.enums import SubscriptionTier

TIER_ORDER: Dict[SubscriptionTier, int] = {
    SubscriptionTier.trial: 0,
    SubscriptionTier.starter: 1,
    SubscriptionTier.professional: 2,
    SubscriptionTier.enterprise: 3,
}

FEATURES = (
    "core_housing",
    "basic_reporting",
    "advanced_reporting",
    "safeguarding",
    "financial_management",
    "government_billing",
    "crisis_intervention",
    "ai_analytics",
    "api_access",
    "custom_integrations",
)


@dataclass(frozen=True)
class Plan:
    tier: SubscriptionTier
    max_residents: Optional[int]
    max_properties: Optional[int]
    features: Dict[str, bool] = field(default_factory=dict)


def _features(*enabled: str) -> Dict[str, bool]:
    return {name: name in enabled for name in FEATURES}


PLAN_CATALOG: Dict[SubscriptionTier, Plan] = {
    SubscriptionTier.trial: Plan(
        SubscriptionTier.trial, 10, 1, _features("core_housing", "basic_reporting")
    ),
    SubscriptionTier.starter: Plan(
        SubscriptionTier.starter, 10, 1, _features("core_housing", "basic_reporting")
    ),
    SubscriptionTier.professional: Plan(
        SubscriptionTier.professional,
        25,
        5,
        _features(
            "core_housing",
            "basic_reporting",
            "advanced_reporting",
            "safeguarding",
            "financial_management",
            "government_billing",
        ),
    ),
    SubscriptionTier.enterprise: Plan(
        SubscriptionTier.enterprise, None, None, _features(*FEATURES)
    ),
}
