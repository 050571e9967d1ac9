"""
Static external-claim to organization-role tables.

Unmapped values fall back to staff. No table can yield platform_admin;
operators are provisioned out of band only.
"""

from typing import Dict, Iterable, Optional

from haven_auth.domain.entities import AuthMethod, MembershipRole
from haven_auth.domain.permissions import role_level

SSO_DEFAULT_ROLE = MembershipRole.staff

SAML_ROLE_MAP: Dict[str, MembershipRole] = {
    "YUTHUB_ADMIN": MembershipRole.admin,
    "YUTHUB_MANAGER": MembershipRole.manager,
    "YUTHUB_SUPERVISOR": MembershipRole.supervisor,
    "YUTHUB_HOUSING_OFFICER": MembershipRole.housing_officer,
    "YUTHUB_SUPPORT_COORDINATOR": MembershipRole.support_coordinator,
    "YUTHUB_FINANCE_OFFICER": MembershipRole.finance_officer,
    "YUTHUB_SAFEGUARDING_OFFICER": MembershipRole.safeguarding_officer,
    "YUTHUB_MAINTENANCE_STAFF": MembershipRole.maintenance_staff,
    "YUTHUB_STAFF": MembershipRole.staff,
    "YUTHUB_READONLY": MembershipRole.readonly,
}

LDAP_GROUP_MAP: Dict[str, MembershipRole] = {
    "CN=YUTHUB_Admins,OU=Groups,DC=company,DC=com": MembershipRole.admin,
    "CN=YUTHUB_Managers,OU=Groups,DC=company,DC=com": MembershipRole.manager,
    "CN=YUTHUB_Supervisors,OU=Groups,DC=company,DC=com": MembershipRole.supervisor,
    "CN=YUTHUB_Housing,OU=Groups,DC=company,DC=com": MembershipRole.housing_officer,
    "CN=YUTHUB_Support,OU=Groups,DC=company,DC=com": MembershipRole.support_coordinator,
    "CN=YUTHUB_Finance,OU=Groups,DC=company,DC=com": MembershipRole.finance_officer,
    "CN=YUTHUB_Safeguarding,OU=Groups,DC=company,DC=com": MembershipRole.safeguarding_officer,
    "CN=YUTHUB_Maintenance,OU=Groups,DC=company,DC=com": MembershipRole.maintenance_staff,
    "CN=YUTHUB_Staff,OU=Groups,DC=company,DC=com": MembershipRole.staff,
    "CN=YUTHUB_Readonly,OU=Groups,DC=company,DC=com": MembershipRole.readonly,
}


def map_role_claim(role_claim: Optional[str]) -> MembershipRole:
    if not role_claim:
        return SSO_DEFAULT_ROLE
    return SAML_ROLE_MAP.get(role_claim.strip().upper(), SSO_DEFAULT_ROLE)


def map_ldap_groups(groups: Iterable[str]) -> MembershipRole:
    """Most senior mapped group wins, regardless of the order groups arrive in."""
    matched = [LDAP_GROUP_MAP[group] for group in groups if group in LDAP_GROUP_MAP]
    if not matched:
        return SSO_DEFAULT_ROLE
    return max(matched, key=role_level)


def map_external_role(identity) -> MembershipRole:
    if identity.auth_method == AuthMethod.ldap:
        return map_ldap_groups(identity.groups)
    return map_role_claim(identity.role_claim)
