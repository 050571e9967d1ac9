"""
Domain Enums

All enumeration types used across domain entities.
"""

from enum import Enum


PLATFORM_ADMIN_ROLE = "platform_admin"
DEFAULT_USER_ROLE = "staff"


class AuthMethod(str, Enum):
    """How an identity proves who it is"""

    local = "local"
    oauth = "oauth"
    saml = "saml"
    ldap = "ldap"


class MembershipRole(str, Enum):
    """Role within an organization, highest privilege first"""

    admin = "admin"
    manager = "manager"
    supervisor = "supervisor"
    housing_officer = "housing_officer"
    support_coordinator = "support_coordinator"
    finance_officer = "finance_officer"
    safeguarding_officer = "safeguarding_officer"
    maintenance_staff = "maintenance_staff"
    staff = "staff"
    readonly = "readonly"


class MembershipStatus(str, Enum):
    """Membership status"""

    active = "active"
    invited = "invited"
    suspended = "suspended"


class OrganizationStatus(str, Enum):
    """Operational status, independent of billing"""

    active = "active"
    disabled = "disabled"


class SubscriptionTier(str, Enum):
    trial = "trial"
    starter = "starter"
    professional = "professional"
    enterprise = "enterprise"


class SubscriptionStatus(str, Enum):
    trial = "trial"
    active = "active"
    past_due = "past_due"
    cancelled = "cancelled"
    paused = "paused"


class ResourceKind(str, Enum):
    """Resources whose count is capped by the subscription plan"""

    residents = "residents"
    properties = "properties"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class AuditOutcome(str, Enum):
    success = "success"
    failure = "failure"
