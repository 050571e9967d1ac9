"""
Tenant Context Resolver

Builds the claim bundle embedded in access tokens from storage. Read-only;
callers own the unit of work.
"""

from datetime import datetime
from typing import Callable, Union
from uuid import UUID

from haven_auth.app.services.entitlements import effective_status
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.claims import OrganizationClaim, TenantContext
from haven_auth.domain.entities import (
    PLATFORM_ADMIN_ROLE,
    MembershipStatus,
    OrganizationStatus,
)
from haven_auth.libs.result import Error, Result, Return


def _resolution_failed() -> Result:
    return Return.err(
        Error(
            "TENANT_RESOLUTION_FAILED",
            "User has no active organization membership",
        )
    )


class TenantContextResolver:
    """
    Business Rules:
    - Only active memberships in active organizations count
    - Ordered by is_primary desc, then membership created_at asc; the first
      is the primary organization (oldest membership when none is flagged)
    - Zero usable memberships is a failure, never an empty context
    - platform_admin identities resolve to a context with no organization
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def resolve(self, user_id: Union[UUID, str]) -> Result[TenantContext]:
        try:
            user_uuid = UUID(str(user_id))
        except ValueError:
            return _resolution_failed()

        user = await self.uow.users.get_by_id(user_uuid)
        if user is None or not user.is_active:
            return _resolution_failed()

        if user.role == PLATFORM_ADMIN_ROLE:
            return Return.ok(
                TenantContext(user_id=str(user.id), email=user.email, role=user.role)
            )

        memberships = [
            m
            for m in await self.uow.memberships.get_by_user_id(user.id)
            if m.status == MembershipStatus.active
        ]
        organizations = {
            organization.id: organization
            for organization in await self.uow.organizations.get_many(
                [m.organization_id for m in memberships]
            )
            if organization.status == OrganizationStatus.active
        }
        memberships = [m for m in memberships if m.organization_id in organizations]
        if not memberships:
            return _resolution_failed()

        memberships.sort(key=lambda m: (not m.is_primary, m.created_at))
        primary = memberships[0]
        organization = organizations[primary.organization_id]

        return Return.ok(
            TenantContext(
                user_id=str(user.id),
                email=user.email,
                role=primary.role.value,
                primary_organization_id=str(organization.id),
                organization_name=organization.name,
                subscription_tier=organization.subscription_tier.value,
                subscription_status=effective_status(organization, self._clock()).value,
                features=dict(organization.features_enabled or {}),
                organizations=[
                    OrganizationClaim(
                        organization_id=str(m.organization_id),
                        organization_name=organizations[m.organization_id].name,
                        role=m.role.value,
                        is_primary=m is primary,
                    )
                    for m in memberships
                ],
                tenant_id=str(organization.id),
            )
        )
