"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the auth domain.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel

from haven_auth.domain.claims import TenantContext, TokenPair


# ============================================================================
# Response DTOs
# ============================================================================


class UserInfo(BaseModel):
    """User information in authentication responses"""

    id: str
    email: str
    role: str


class OrganizationInfo(BaseModel):
    """Organization information in authentication responses"""

    id: str
    name: str
    role: str
    is_primary: bool


class AuthTokensResponse(BaseModel):
    """Tokens plus the tenant context they were issued for"""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo
    primary_organization: Optional[OrganizationInfo] = None
    organizations: List[OrganizationInfo]
    subscription_tier: Optional[str] = None
    subscription_status: Optional[str] = None

    @classmethod
    def from_tokens(cls, tokens: TokenPair, context: TenantContext) -> "AuthTokensResponse":
        organizations = [
            OrganizationInfo(
                id=o.organization_id,
                name=o.organization_name,
                role=o.role,
                is_primary=o.is_primary,
            )
            for o in context.organizations
        ]
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_type=tokens.token_type,
            expires_in=tokens.expires_in,
            user=UserInfo(id=context.user_id, email=context.email, role=context.role),
            primary_organization=next((o for o in organizations if o.is_primary), None),
            organizations=organizations,
            subscription_tier=context.subscription_tier,
            subscription_status=context.subscription_status,
        )


class MfaChallengeResponse(BaseModel):
    """Password accepted; a TOTP code is still required"""

    mfa_required: Literal[True] = True
    mfa_token: str
    expires_in: int


class MfaSetupResponse(BaseModel):
    secret: str
    provisioning_uri: str


class StatusResponse(BaseModel):
    """Generic acknowledgement"""

    status: str
    message: str
