"""
Organization Entity

The tenant: an isolated customer account and its subscription state.
"""

from datetime import datetime
from typing import Dict, Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import JSON, Column, DateTime, Field, Index, Relationship, SQLModel

from haven_auth.domain.base import utcnow
from .enums import OrganizationStatus, SubscriptionStatus, SubscriptionTier

if TYPE_CHECKING:
    from .membership import Membership


class Organization(SQLModel, table=True):
    """
    Organization entity - tenant plus its subscription.

    Business Rules:
    - Exactly one tier/status pair at a time
    - Status changes come from billing events or explicit admin action only
    - max_* NULL means unlimited
    - current_* counters change only through atomic conditional updates
    - status=disabled (emergency action) removes the tenant from every
      token issued afterwards
    """

    __tablename__ = "organizations"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255)

    status: OrganizationStatus = Field(default=OrganizationStatus.active)

    subscription_tier: SubscriptionTier = Field(default=SubscriptionTier.trial)
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.trial)
    features_enabled: Dict[str, bool] = Field(
        default_factory=dict, sa_column=Column(JSON)
    )

    max_residents: Optional[int] = Field(default=None)
    max_properties: Optional[int] = Field(default=None)
    current_resident_count: int = Field(default=0)
    current_property_count: int = Field(default=0)

    # Billing cycle
    trial_end_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    subscription_start_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    subscription_end_date: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    billing_cycle_anchor: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    # Relationships
    memberships: list["Membership"] = Relationship(back_populates="organization")

    __table_args__ = (
        Index("idx_organization_status", "status"),
        Index("idx_organization_subscription", "subscription_tier", "subscription_status"),
    )
