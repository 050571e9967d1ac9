"""
Platform Admin DTOs
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class EmergencyActionType(str, Enum):
    disable_organization = "disable_organization"
    force_password_reset = "force_password_reset"


class EmergencyActionCommand(BaseModel):
    action: EmergencyActionType
    target_id: str = Field(..., min_length=1)
    reason: str = ""


class AuthorizationDecision(BaseModel):
    authorized: bool
    reason: str


class EmergencyActionResponse(BaseModel):
    action: EmergencyActionType
    target_id: str
    status: str
    audit_event_id: str


class PlatformOverviewResponse(BaseModel):
    total_organizations: int
    organizations_by_status: Dict[str, int]
    organizations_by_tier: Dict[str, int]
    active_memberships: int
    platform_admins: int
    usage_totals: Dict[str, int]
    high_risk_events_24h: int
    generated_at: Optional[str] = None
