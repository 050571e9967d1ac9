"""
Token claim models.

One claim schema for every access token. Field names are snake_case in
Python and camelCase on the wire (userId, primaryOrganizationId, ...).
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from haven_auth.domain.entities.enums import PLATFORM_ADMIN_ROLE


class _ClaimModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrganizationClaim(_ClaimModel):
    organization_id: str
    organization_name: str
    role: str
    is_primary: bool = False


class TenantContext(_ClaimModel):
    """
    Everything the resolver knows about a user at issuance time.

    role is the role held in the primary organization, or platform_admin
    for operators, who carry no organization at all.
    """

    user_id: str
    email: str
    role: str
    primary_organization_id: Optional[str] = None
    organization_name: Optional[str] = None
    subscription_tier: Optional[str] = None
    subscription_status: Optional[str] = None
    features: Dict[str, bool] = Field(default_factory=dict)
    organizations: List[OrganizationClaim] = Field(default_factory=list)
    tenant_id: Optional[str] = None

    @property
    def is_platform_admin(self) -> bool:
        return self.role == PLATFORM_ADMIN_ROLE

    def membership_for(self, organization_id: str) -> Optional[OrganizationClaim]:
        for organization in self.organizations:
            if organization.organization_id == str(organization_id):
                return organization
        return None

    def to_claims(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class AccessClaims(TenantContext):
    """Verified access-token payload"""

    sub: str
    iss: str
    aud: str
    iat: int
    exp: int
    jti: str
    type: Literal["access"]
    mfa_verified: bool = False


class RefreshClaims(_ClaimModel):
    """Refresh tokens are deliberately minimal"""

    sub: str
    iss: str
    aud: str
    iat: int
    exp: int
    jti: str
    type: Literal["refresh"]


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
