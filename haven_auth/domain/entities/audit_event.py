"""
AuditEvent Entity

Immutable log of security-relevant events.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, SQLModel

from haven_auth.domain.base import utcnow
from .enums import AuditOutcome, RiskLevel


class AuditEvent(SQLModel, table=True):
    """
    AuditEvent entity - append-only security log.

    Business Rules:
    - Never updated or deleted by the application
    - actor is the acting user id, or "system" for collaborator actions
    - organization_id is NULL for events outside any tenant (login failures,
      platform-operator actions)
    """

    __tablename__ = "audit_events"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: Optional[UUID] = Field(default=None, index=True)
    actor: str = Field(default="system", max_length=64)
    organization_id: Optional[UUID] = Field(default=None, index=True)

    action: str = Field(max_length=100)  # e.g., "login_failed", "access_denied"
    resource: Optional[str] = Field(default=None, max_length=255)
    outcome: AuditOutcome = Field(default=AuditOutcome.success)
    risk_level: RiskLevel = Field(default=RiskLevel.low)
    event_metadata: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_audit_created_at", "created_at"),
        Index("idx_audit_organization_action", "organization_id", "action"),
        Index("idx_audit_risk_level", "risk_level"),
    )
