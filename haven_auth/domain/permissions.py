"""
Role policies.

Two independent models, evaluated by separate functions:

- permission sets: role -> explicit set of "resource:action" strings
- role hierarchy: ordered seniority, used by "at least this role" checks

Routes choose one or the other; they are never folded together because
hierarchy position does not imply a superset of permissions
(finance_officer outranks housing_officer yet cannot write properties).
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Tuple

from haven_auth.domain.entities.enums import MembershipRole


class Permission(str, Enum):
    PROPERTIES_READ = "properties:read"
    PROPERTIES_WRITE = "properties:write"
    PROPERTIES_DELETE = "properties:delete"

    RESIDENTS_READ = "residents:read"
    RESIDENTS_WRITE = "residents:write"
    RESIDENTS_DELETE = "residents:delete"
    RESIDENTS_SENSITIVE = "residents:sensitive"

    FINANCIAL_READ = "financial:read"
    FINANCIAL_WRITE = "financial:write"
    FINANCIAL_DELETE = "financial:delete"
    FINANCIAL_REPORTS = "financial:reports"

    SUPPORT_READ = "support:read"
    SUPPORT_WRITE = "support:write"
    SUPPORT_DELETE = "support:delete"

    SAFEGUARDING_READ = "safeguarding:read"
    SAFEGUARDING_WRITE = "safeguarding:write"
    SAFEGUARDING_DELETE = "safeguarding:delete"

    INCIDENTS_READ = "incidents:read"
    INCIDENTS_WRITE = "incidents:write"
    INCIDENTS_DELETE = "incidents:delete"

    MAINTENANCE_READ = "maintenance:read"
    MAINTENANCE_WRITE = "maintenance:write"
    MAINTENANCE_DELETE = "maintenance:delete"

    REPORTS_READ = "reports:read"
    REPORTS_WRITE = "reports:write"
    ANALYTICS_READ = "analytics:read"

    USERS_READ = "users:read"
    USERS_WRITE = "users:write"
    USERS_DELETE = "users:delete"

    SYSTEM_READ = "system:read"
    SYSTEM_WRITE = "system:write"
    AUDIT_READ = "audit:read"


P = Permission

ROLE_PERMISSIONS: Dict[MembershipRole, FrozenSet[Permission]] = {
    MembershipRole.admin: frozenset(
        {
            P.PROPERTIES_READ, P.PROPERTIES_WRITE, P.PROPERTIES_DELETE,
            P.RESIDENTS_READ, P.RESIDENTS_WRITE, P.RESIDENTS_DELETE, P.RESIDENTS_SENSITIVE,
            P.FINANCIAL_READ, P.FINANCIAL_WRITE, P.FINANCIAL_DELETE, P.FINANCIAL_REPORTS,
            P.SUPPORT_READ, P.SUPPORT_WRITE, P.SUPPORT_DELETE,
            P.SAFEGUARDING_READ, P.SAFEGUARDING_WRITE, P.SAFEGUARDING_DELETE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE, P.INCIDENTS_DELETE,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE, P.MAINTENANCE_DELETE,
            P.REPORTS_READ, P.REPORTS_WRITE, P.ANALYTICS_READ,
            P.USERS_READ, P.USERS_WRITE, P.USERS_DELETE,
            P.SYSTEM_READ, P.SYSTEM_WRITE, P.AUDIT_READ,
        }
    ),
    MembershipRole.manager: frozenset(
        {
            P.PROPERTIES_READ, P.PROPERTIES_WRITE,
            P.RESIDENTS_READ, P.RESIDENTS_WRITE, P.RESIDENTS_SENSITIVE,
            P.FINANCIAL_READ, P.FINANCIAL_WRITE, P.FINANCIAL_REPORTS,
            P.SUPPORT_READ, P.SUPPORT_WRITE,
            P.SAFEGUARDING_READ, P.SAFEGUARDING_WRITE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE,
            P.REPORTS_READ, P.REPORTS_WRITE, P.ANALYTICS_READ,
            P.USERS_READ, P.USERS_WRITE,
            P.AUDIT_READ,
        }
    ),
    MembershipRole.supervisor: frozenset(
        {
            P.PROPERTIES_READ, P.PROPERTIES_WRITE,
            P.RESIDENTS_READ, P.RESIDENTS_WRITE,
            P.SUPPORT_READ, P.SUPPORT_WRITE,
            P.SAFEGUARDING_READ, P.SAFEGUARDING_WRITE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE,
            P.REPORTS_READ, P.ANALYTICS_READ,
            P.USERS_READ,
        }
    ),
    MembershipRole.housing_officer: frozenset(
        {
            P.PROPERTIES_READ, P.PROPERTIES_WRITE,
            P.RESIDENTS_READ, P.RESIDENTS_WRITE,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE,
            P.REPORTS_READ,
        }
    ),
    MembershipRole.support_coordinator: frozenset(
        {
            P.RESIDENTS_READ, P.RESIDENTS_WRITE,
            P.SUPPORT_READ, P.SUPPORT_WRITE,
            P.SAFEGUARDING_READ, P.SAFEGUARDING_WRITE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE,
            P.REPORTS_READ, P.ANALYTICS_READ,
        }
    ),
    MembershipRole.finance_officer: frozenset(
        {
            P.FINANCIAL_READ, P.FINANCIAL_WRITE, P.FINANCIAL_REPORTS,
            P.RESIDENTS_READ,
            P.PROPERTIES_READ,
            P.REPORTS_READ, P.ANALYTICS_READ,
        }
    ),
    MembershipRole.safeguarding_officer: frozenset(
        {
            P.RESIDENTS_READ, P.RESIDENTS_SENSITIVE,
            P.SAFEGUARDING_READ, P.SAFEGUARDING_WRITE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE,
            P.SUPPORT_READ,
            P.REPORTS_READ, P.ANALYTICS_READ,
        }
    ),
    MembershipRole.maintenance_staff: frozenset(
        {
            P.PROPERTIES_READ,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE,
            P.RESIDENTS_READ,
        }
    ),
    MembershipRole.staff: frozenset(
        {
            P.PROPERTIES_READ, P.PROPERTIES_WRITE,
            P.RESIDENTS_READ, P.RESIDENTS_WRITE,
            P.SUPPORT_READ, P.SUPPORT_WRITE,
            P.INCIDENTS_READ, P.INCIDENTS_WRITE,
            P.MAINTENANCE_READ, P.MAINTENANCE_WRITE,
            P.FINANCIAL_READ,
            P.REPORTS_READ, P.ANALYTICS_READ,
        }
    ),
    MembershipRole.readonly: frozenset(
        {
            P.PROPERTIES_READ,
            P.RESIDENTS_READ,
            P.REPORTS_READ,
        }
    ),
}

# Every successful use of these is audit-logged, keyed by resource class
SENSITIVE_PERMISSIONS: Dict[Permission, str] = {
    P.FINANCIAL_READ: "financial",
    P.FINANCIAL_WRITE: "financial",
    P.FINANCIAL_DELETE: "financial",
    P.FINANCIAL_REPORTS: "financial",
    P.RESIDENTS_SENSITIVE: "resident_sensitive",
}

# Lowest seniority first
ROLE_HIERARCHY: Tuple[MembershipRole, ...] = (
    MembershipRole.readonly,
    MembershipRole.staff,
    MembershipRole.maintenance_staff,
    MembershipRole.housing_officer,
    MembershipRole.support_coordinator,
    MembershipRole.finance_officer,
    MembershipRole.safeguarding_officer,
    MembershipRole.supervisor,
    MembershipRole.manager,
    MembershipRole.admin,
)


def _as_role(role) -> MembershipRole | None:
    try:
        return MembershipRole(role)
    except ValueError:
        return None


def _as_permission(permission) -> Permission | None:
    try:
        return Permission(permission)
    except ValueError:
        return None


def has_permission(role, permission) -> bool:
    """Unknown roles and unknown permission strings are denied."""
    membership_role = _as_role(role)
    wanted = _as_permission(permission)
    if membership_role is None or wanted is None:
        return False
    return wanted in ROLE_PERMISSIONS[membership_role]


def is_role_allowed(role, allowed_roles: Iterable) -> bool:
    """Flat allow-list: the role must be one of the listed roles."""
    role = getattr(role, "value", role)
    return role in {getattr(r, "value", r) for r in allowed_roles}


def role_level(role) -> int:
    """Position in ROLE_HIERARCHY, -1 for roles outside it."""
    membership_role = _as_role(role)
    if membership_role is None:
        return -1
    return ROLE_HIERARCHY.index(membership_role)


def meets_role_level(role, minimum_role) -> bool:
    """Ordered hierarchy: the role must be at least as senior as minimum_role."""
    required = role_level(minimum_role)
    if required < 0:
        return False
    return role_level(role) >= required


def sensitive_resource_for(permission) -> str | None:
    """The sensitive resource class a permission guards, if any."""
    return SENSITIVE_PERMISSIONS.get(_as_permission(permission))
