"""
SSO Login Use Case

OAuth, SAML and LDAP logins all arrive here as an ExternalIdentity from a
provider adapter. Roles come only from the static mapping tables.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.identity_provider import (
    IIdentityProvider,
    authenticate_with_timeout,
)
from haven_auth.app.services.sso_role_mapping import map_external_role
from haven_auth.app.services.tenant_context_resolver import TenantContextResolver
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import (
    PLATFORM_ADMIN_ROLE,
    AuditOutcome,
    Membership,
    MembershipStatus,
    RiskLevel,
    User,
)
from haven_auth.libs.result import Error, Result, Return
from ._common import invalid_credentials
from .dtos import AuthTokensResponse

logger = logging.getLogger(__name__)


class SsoLoginUseCase:
    """
    Business Rules:
    - Provider timeout or rejection is an authentication failure
    - First login provisions a password-less user
    - A local account is linked by email only if it has no other subject
    - Providers bound to an organization upsert the membership with the
      mapped role; a suspended membership is not reactivated
    - Operators (platform_admin) cannot sign in through SSO
    - The provider is trusted for the second factor; tokens carry
      mfaVerified=false
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: TokenService,
        timeout_seconds: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.token_service = token_service
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    async def execute(
        self, provider: IIdentityProvider, credential: Dict[str, Any]
    ) -> Result[AuthTokensResponse]:
        identity = await authenticate_with_timeout(provider, credential, self.timeout_seconds)

        async with self.uow:
            ledger = AuditLedger(self.uow)

            async def fail(reason: str, error: Optional[Error] = None) -> Result:
                await ledger.record(
                    "sso_login_failed",
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"provider": provider.name, "reason": reason},
                )
                await self.uow.commit()
                return Return.err(error or invalid_credentials())

            if identity is None:
                return await fail("provider_rejected")

            method = identity.auth_method.value
            user = await self.uow.users.get_by_external_subject(method, identity.subject)
            if user is None:
                user = await self.uow.users.get_by_email(identity.email)
                if user is not None:
                    if user.external_subject and user.external_subject != identity.subject:
                        return await fail("subject_mismatch")
                    user.external_subject = identity.subject
                    user = await self.uow.users.update(user)

            if user is None:
                user = await self.uow.users.create(
                    User(
                        email=identity.email,
                        password_hash=None,
                        auth_method=identity.auth_method,
                        external_subject=identity.subject,
                        email_verified=True,
                    )
                )
                logger.info("Provisioned %s user %s via %s", method, user.id, provider.name)

            if user.role == PLATFORM_ADMIN_ROLE:
                return await fail("operator_sso_blocked")
            if not user.is_active:
                return await fail(
                    "user_disabled", Error("USER_DISABLED", "User account is disabled")
                )

            mapped_role = map_external_role(identity)
            if provider.organization_id:
                await self._upsert_membership(user, provider.organization_id, mapped_role)

            resolution = await TenantContextResolver(self.uow, self._clock).resolve(user.id)
            if resolution.is_err():
                return await fail(resolution.error.code, resolution.error)
            context = resolution.value

            await self.uow.users.clear_failed_logins(user.id, self._clock())
            await ledger.record(
                "sso_login",
                user_id=user.id,
                organization_id=context.primary_organization_id,
                metadata={
                    "provider": provider.name,
                    "auth_method": method,
                    "mapped_role": mapped_role.value,
                },
            )
            await self.uow.commit()

        tokens = self.token_service.issue(context, mfa_verified=False)
        return Return.ok(AuthTokensResponse.from_tokens(tokens, context))

    async def _upsert_membership(self, user: User, organization_id: str, role) -> None:
        organization_uuid = UUID(str(organization_id))
        membership = await self.uow.memberships.get_by_user_and_organization(
            user.id, organization_uuid
        )
        if membership is None:
            existing = await self.uow.memberships.get_by_user_id(user.id)
            await self.uow.memberships.create(
                Membership(
                    user_id=user.id,
                    organization_id=organization_uuid,
                    role=role,
                    is_primary=not any(m.is_primary for m in existing),
                    status=MembershipStatus.active,
                )
            )
        elif membership.role != role and membership.status == MembershipStatus.active:
            membership.role = role
            await self.uow.memberships.update(membership)
