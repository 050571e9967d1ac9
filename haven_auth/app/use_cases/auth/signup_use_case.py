from datetime import datetime, timedelta
from typing import Callable

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.tenant_context_resolver import TenantContextResolver
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import (
    AuthMethod,
    Membership,
    MembershipRole,
    MembershipStatus,
    Organization,
    SubscriptionStatus,
    SubscriptionTier,
    User,
)
from haven_auth.domain.plans import PLAN_CATALOG
from haven_auth.libs.result import Error, Result, Return
from ._common import hash_password_async
from .dtos import AuthTokensResponse
from .signup_dto import SignupCommand


class SignupUseCase:
    """
    Signup Use Case

    Business Logic:
    1. Reject an email that is already registered
    2. Hash password with bcrypt cost factor 12
    3. Create the organization on a trial with plan-catalog defaults
    4. Create the primary admin membership
    5. Audit, commit, then issue tokens from the resolved context
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: TokenService,
        trial_days: int = 14,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.token_service = token_service
        self.trial_days = trial_days
        self._clock = clock

    async def execute(self, command: SignupCommand) -> Result[AuthTokensResponse]:
        now = self._clock()
        email = command.email.strip().lower()

        async with self.uow:
            existing_user = await self.uow.users.get_by_email(email)
            if existing_user:
                return Return.err(Error("EMAIL_ALREADY_EXISTS", "Email already registered"))

            user = await self.uow.users.create(
                User(
                    email=email,
                    password_hash=await hash_password_async(command.password),
                    auth_method=AuthMethod.local,
                )
            )

            plan = PLAN_CATALOG[SubscriptionTier.trial]
            organization = await self.uow.organizations.create(
                Organization(
                    name=command.organization_name,
                    subscription_tier=SubscriptionTier.trial,
                    subscription_status=SubscriptionStatus.trial,
                    features_enabled=dict(plan.features),
                    max_residents=plan.max_residents,
                    max_properties=plan.max_properties,
                    trial_end_date=now + timedelta(days=self.trial_days),
                )
            )

            await self.uow.memberships.create(
                Membership(
                    user_id=user.id,
                    organization_id=organization.id,
                    role=MembershipRole.admin,
                    is_primary=True,
                    status=MembershipStatus.active,
                )
            )

            await AuditLedger(self.uow).record(
                "signup",
                user_id=user.id,
                organization_id=organization.id,
                metadata={"email": email, "organization_name": command.organization_name},
            )

            resolution = await TenantContextResolver(self.uow, self._clock).resolve(user.id)
            if resolution.is_err():
                return Return.err(resolution.error)

            await self.uow.commit()

        tokens = self.token_service.issue(resolution.value, mfa_verified=False)
        return Return.ok(AuthTokensResponse.from_tokens(tokens, resolution.value))
