"""
Membership Entity

Links User to Organization with a role.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, Relationship, SQLModel

from haven_auth.domain.base import utcnow
from .enums import MembershipRole, MembershipStatus

if TYPE_CHECKING:
    from .user import User
    from .organization import Organization


class Membership(SQLModel, table=True):
    """
    Membership entity - links User to Organization with a role.

    Business Rules:
    - One user can be member of multiple organizations
    - (user_id, organization_id) must be unique
    - At most one membership per user should carry is_primary; when none
      does, the oldest active membership is the primary one
    - Only active memberships grant access
    """

    __tablename__ = "memberships"

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    user_id: UUID = Field(foreign_key="users.id", nullable=False, index=True)
    organization_id: UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True
    )

    role: MembershipRole = Field(nullable=False)
    is_primary: bool = Field(default=False)
    status: MembershipStatus = Field(default=MembershipStatus.active)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))

    # Relationships
    user: "User" = Relationship(back_populates="memberships")
    organization: "Organization" = Relationship(back_populates="memberships")

    __table_args__ = (
        Index(
            "idx_membership_user_organization", "user_id", "organization_id", unique=True
        ),
        Index("idx_membership_status", "status"),
    )
