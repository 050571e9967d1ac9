"""
User Entity

Represents a person who can belong to multiple organizations.
"""

from datetime import datetime
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

from sqlmodel import Column, DateTime, Field, Index, Relationship, SQLModel

from haven_auth.domain.base import utcnow
from .enums import AuthMethod, DEFAULT_USER_ROLE

if TYPE_CHECKING:
    from .membership import Membership


class User(SQLModel, table=True):
    """
    User entity - the identity record of the credential store.

    Business Rules:
    - Email must be unique across all users
    - password_hash is NULL for SSO-only accounts
    - role is an identity-level label; organization roles live on Membership.
      platform_admin is the only label that grants anything by itself
    - Lockout counters are only changed through atomic repository updates
    - Never hard-deleted; is_active=False deactivates
    """

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: Optional[str] = Field(default=None, max_length=60)

    role: str = Field(default=DEFAULT_USER_ROLE, max_length=50)
    auth_method: AuthMethod = Field(default=AuthMethod.local)
    external_subject: Optional[str] = Field(default=None, max_length=255)

    # TOTP second factor
    mfa_secret: Optional[str] = Field(default=None, max_length=64)
    mfa_enabled: bool = Field(default=False)

    # Lockout record
    failed_login_attempts: int = Field(default=0)
    last_failed_login_at: Optional[datetime] = Field(
        default=None, sa_column=Column(DateTime)
    )
    locked_until: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    email_verified: bool = Field(default=False)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime))
    last_login_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    # Relationships
    memberships: list["Membership"] = Relationship(back_populates="user")

    __table_args__ = (Index("idx_user_role", "role"),)
