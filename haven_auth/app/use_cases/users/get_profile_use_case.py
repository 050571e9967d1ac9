"""
Get Profile Use Case

Current user plus the tenant context their access token was issued for.
"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.claims import AccessClaims, OrganizationClaim
from haven_auth.libs.result import Error, Result, Return


class ProfileResponse(BaseModel):
    id: str
    email: str
    role: str
    auth_method: str
    mfa_enabled: bool
    mfa_verified: bool
    last_login_at: Optional[str]
    primary_organization_id: Optional[str]
    organization_name: Optional[str]
    subscription_tier: Optional[str]
    subscription_status: Optional[str]
    organizations: List[OrganizationClaim]


class GetProfileUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, claims: AccessClaims) -> Result[ProfileResponse]:
        async with self.uow:
            user = await self.uow.users.get_by_id(UUID(claims.user_id))
            if user is None or not user.is_active:
                return Return.err(Error("USER_NOT_FOUND", "User not found"))

            return Return.ok(
                ProfileResponse(
                    id=str(user.id),
                    email=user.email,
                    role=claims.role,
                    auth_method=getattr(user.auth_method, "value", user.auth_method),
                    mfa_enabled=user.mfa_enabled,
                    mfa_verified=claims.mfa_verified,
                    last_login_at=(
                        user.last_login_at.isoformat() + "Z" if user.last_login_at else None
                    ),
                    primary_organization_id=claims.primary_organization_id,
                    organization_name=claims.organization_name,
                    subscription_tier=claims.subscription_tier,
                    subscription_status=claims.subscription_status,
                    organizations=claims.organizations,
                )
            )
