"""
Domain Entities

All domain entities organized by model.
Each entity in its own file for better maintainability.
"""

# Export all enums
from .enums import (
    PLATFORM_ADMIN_ROLE,
    DEFAULT_USER_ROLE,
    AuthMethod,
    MembershipRole,
    MembershipStatus,
    OrganizationStatus,
    SubscriptionTier,
    SubscriptionStatus,
    ResourceKind,
    RiskLevel,
    AuditOutcome,
)

# Export all entities
from .user import User
from .organization import Organization
from .membership import Membership
from .audit_event import AuditEvent
from .password_reset_token import PasswordResetToken
from .rate_limit_bucket import RateLimitBucket

__all__ = [
    # Enums
    "PLATFORM_ADMIN_ROLE",
    "DEFAULT_USER_ROLE",
    "AuthMethod",
    "MembershipRole",
    "MembershipStatus",
    "OrganizationStatus",
    "SubscriptionTier",
    "SubscriptionStatus",
    "ResourceKind",
    "RiskLevel",
    "AuditOutcome",
    # Entities
    "User",
    "Organization",
    "Membership",
    "AuditEvent",
    "PasswordResetToken",
    "RateLimitBucket",
]
