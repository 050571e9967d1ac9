"""
Declarative field projections.

Each resource kind lists the permission needed to read it at all and the
extra permission needed for each restricted field. Records are projected
before serialization; nothing inspects response shapes afterwards.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from haven_auth.domain.permissions import Permission, has_permission


@dataclass(frozen=True)
class Projection:
    read_permission: Permission
    restricted_fields: Mapping[str, Permission] = field(default_factory=dict)


PROJECTIONS: Dict[str, Projection] = {
    "resident": Projection(
        read_permission=Permission.RESIDENTS_READ,
        restricted_fields={
            "medical_info": Permission.RESIDENTS_SENSITIVE,
            "emergency_contact": Permission.RESIDENTS_SENSITIVE,
            "social_worker_contact": Permission.RESIDENTS_SENSITIVE,
            "previous_addresses": Permission.RESIDENTS_SENSITIVE,
            "risk_assessment": Permission.SAFEGUARDING_READ,
        },
    ),
    "property": Projection(read_permission=Permission.PROPERTIES_READ),
    "financial_record": Projection(
        read_permission=Permission.FINANCIAL_READ,
        restricted_fields={"bank_details": Permission.FINANCIAL_WRITE},
    ),
    "safeguarding_record": Projection(read_permission=Permission.SAFEGUARDING_READ),
    "incident": Projection(
        read_permission=Permission.INCIDENTS_READ,
        restricted_fields={"safeguarding_notes": Permission.SAFEGUARDING_READ},
    ),
}


def can_read(resource: str, role: str) -> bool:
    projection = PROJECTIONS.get(resource)
    if projection is None:
        return False
    return has_permission(role, projection.read_permission)


def project(resource: str, record: Mapping[str, Any], role: str) -> Optional[Dict[str, Any]]:
    """
    Return the fields of record that role may see, or None when the role
    cannot read the resource kind at all. Unknown resource kinds are denied.
    """
    if not can_read(resource, role):
        return None
    restricted = PROJECTIONS[resource].restricted_fields
    return {
        name: value
        for name, value in record.items()
        if name not in restricted or has_permission(role, restricted[name])
    }

