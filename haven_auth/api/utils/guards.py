"""
Request Authorization Chain

Every protected route declares a RoutePolicy; AuthorizationChain runs it as
a FastAPI dependency:

    verify token -> organization scope -> role (allow-list, then
    hierarchy minimum) -> permission -> subscription / feature / tier
    -> usage quota -> sensitive-resource audit

Organization scope is resolved right after authentication so that every
later gate judges the role held in the organization the request acts on.
Each rejection is audit-logged best effort before the 401/403 is raised.

Business routes attach guards declaratively:

    @router.post("/organizations/{organization_id}/residents")
    async def create_resident(
        ctx: AuthorizationContext = Depends(
            authorize(
                permission=Permission.RESIDENTS_WRITE,
                quota=ResourceKind.residents,
                organization_param="organization_id",
            )
        ),
    ): ...
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple
from uuid import UUID

from fastapi import Depends, Request, status

from haven_auth.api.error import ClientError
from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.entitlements import (
    Entitlements,
    SubscriptionEntitlementEngine,
    has_feature,
    is_subscription_active,
    meets_tier,
    quota_error,
    within_quota,
)
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.depends import get_token_service, get_unit_of_work
from haven_auth.domain.claims import AccessClaims
from haven_auth.domain.entities import (
    AuditOutcome,
    MembershipStatus,
    OrganizationStatus,
    ResourceKind,
    RiskLevel,
    SubscriptionStatus,
    SubscriptionTier,
)
from haven_auth.domain.permissions import (
    has_permission,
    is_role_allowed,
    meets_role_level,
    sensitive_resource_for,
)
from haven_auth.domain.projections import project
from haven_auth.libs.result import Error
from .request_context import client_ip, read_claims


@dataclass(frozen=True)
class RoutePolicy:
    authenticated: bool = True
    # Permission/subscription/quota gates need an organization to act on
    tenant_scoped: bool = False
    roles: Tuple[str, ...] = ()
    min_role: Optional[str] = None
    permission: Optional[str] = None
    active_subscription: bool = False
    feature: Optional[str] = None
    min_tier: Optional[str] = None
    quota: Optional[ResourceKind] = None
    organization_param: Optional[str] = None
    # Defaults to the class of a financial or resident-sensitive permission
    sensitive_resource: Optional[str] = None

    @property
    def needs_organization(self) -> bool:
        return bool(
            self.tenant_scoped
            or self.roles
            or self.min_role
            or self.permission
            or self.active_subscription
            or self.feature
            or self.min_tier
            or self.quota
            or self.organization_param
        )

    @property
    def audited_resource(self) -> Optional[str]:
        return self.sensitive_resource or sensitive_resource_for(self.permission)

    @property
    def needs_entitlements(self) -> bool:
        return bool(self.active_subscription or self.feature or self.min_tier)


@dataclass
class AuthorizationContext:
    claims: Optional[AccessClaims]
    organization_id: Optional[str] = None
    role: Optional[str] = None
    entitlements: Optional[Entitlements] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.claims.user_id if self.claims else None

    @property
    def is_authenticated(self) -> bool:
        return self.claims is not None

    def project(self, resource: str, record: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Fields of record this request's role may see; None if none at all."""
        if self.role is None:
            return None
        return project(resource, record, self.role)


def _forbidden(code: str, message: str, **context) -> ClientError:
    return ClientError(
        Error(code, message, **context), status_code=status.HTTP_403_FORBIDDEN
    )


def _snapshot_entitlements(claims: AccessClaims) -> Optional[Entitlements]:
    """Entitlements as embedded in the token at issuance; None if incomplete."""
    try:
        return Entitlements(
            organization_id=claims.primary_organization_id,
            tier=SubscriptionTier(claims.subscription_tier),
            status=SubscriptionStatus(claims.subscription_status),
            features=dict(claims.features),
        )
    except (TypeError, ValueError):
        return None


class AuthorizationChain:
    def __init__(self, policy: RoutePolicy):
        self.policy = policy

    async def __call__(
        self,
        request: Request,
        uow: UnitOfWork = Depends(get_unit_of_work),
        token_service: TokenService = Depends(get_token_service),
    ) -> AuthorizationContext:
        policy = self.policy

        async def reject(exc: ClientError, risk_level: RiskLevel = RiskLevel.medium, **extra):
            async with uow:
                await AuditLedger(uow).record_best_effort(
                    "access_denied",
                    user_id=extra.pop("user_id", None),
                    organization_id=extra.pop("organization_id", None),
                    resource=f"{request.method} {request.url.path}",
                    outcome=AuditOutcome.failure,
                    risk_level=risk_level,
                    metadata={
                        "error": exc.base_error.code,
                        "client_ip": client_ip(request),
                        **extra,
                    },
                )
            raise exc

        try:
            claims = read_claims(request, token_service, required=policy.authenticated)
        except ClientError as exc:
            await reject(exc, RiskLevel.low)
        if claims is None:
            return AuthorizationContext(claims=None)

        context = AuthorizationContext(claims=claims)
        if not policy.needs_organization:
            context.role = claims.role
            return context

        audit = {"user_id": claims.user_id}

        # Organization scope
        requested = None
        if policy.organization_param:
            requested = request.path_params.get(
                policy.organization_param
            ) or request.query_params.get(policy.organization_param)

        if requested:
            role = await self._live_membership_role(uow, claims, requested)
            if role is None:
                await reject(
                    _forbidden(
                        "ORGANIZATION_ACCESS_DENIED",
                        "You are not a member of this organization",
                        organizationId=requested,
                    ),
                    RiskLevel.high,
                    requested_organization_id=requested,
                    **audit,
                )
            context.organization_id = str(UUID(requested))
            context.role = role
        elif claims.primary_organization_id:
            context.organization_id = claims.primary_organization_id
            context.role = claims.role
        else:
            await reject(
                _forbidden("ORGANIZATION_ACCESS_DENIED", "No organization context"),
                RiskLevel.high,
                **audit,
            )
        audit["organization_id"] = context.organization_id

        # Role gates
        if policy.roles and not is_role_allowed(context.role, policy.roles):
            await reject(
                _forbidden(
                    "INSUFFICIENT_ROLE",
                    "Your role does not allow this action",
                    requiredRoles=[getattr(r, "value", r) for r in policy.roles],
                    currentRole=context.role,
                ),
                **audit,
            )
        if policy.min_role and not meets_role_level(context.role, policy.min_role):
            await reject(
                _forbidden(
                    "INSUFFICIENT_ROLE",
                    "Your role does not allow this action",
                    requiredRole=getattr(policy.min_role, "value", policy.min_role),
                    currentRole=context.role,
                ),
                **audit,
            )

        # Permission gate
        if policy.permission and not has_permission(context.role, policy.permission):
            await reject(
                _forbidden(
                    "INSUFFICIENT_PERMISSION",
                    "You do not have permission to perform this action",
                    requiredPermission=getattr(policy.permission, "value", policy.permission),
                ),
                **audit,
            )

        # Subscription, feature and tier gates
        if policy.needs_entitlements:
            context.entitlements = await self._entitlements(uow, claims, context)
            entitlements = context.entitlements
            if entitlements is None:
                await reject(
                    _forbidden("SUBSCRIPTION_INACTIVE", "No subscription found"),
                    **audit,
                )
            if policy.active_subscription and not is_subscription_active(entitlements):
                await reject(
                    _forbidden(
                        "SUBSCRIPTION_INACTIVE",
                        "An active subscription is required",
                        subscriptionStatus=entitlements.status.value,
                    ),
                    **audit,
                )
            if policy.feature and not has_feature(entitlements, policy.feature):
                await reject(
                    _forbidden(
                        "FEATURE_NOT_AVAILABLE",
                        f"The {policy.feature} feature is not included in your plan",
                        featureName=policy.feature,
                        currentTier=entitlements.tier.value,
                    ),
                    **audit,
                )
            if policy.min_tier and not meets_tier(entitlements, policy.min_tier):
                await reject(
                    _forbidden(
                        "INSUFFICIENT_TIER",
                        "Your subscription tier does not include this action",
                        requiredTier=getattr(policy.min_tier, "value", policy.min_tier),
                        currentTier=entitlements.tier.value,
                    ),
                    **audit,
                )

        # Usage quota, always against live counters
        if policy.quota:
            async with uow:
                live = await SubscriptionEntitlementEngine(uow).current_entitlements(
                    UUID(context.organization_id)
                )
            if live is None or not within_quota(live, policy.quota):
                error = (
                    quota_error(live, policy.quota)
                    if live is not None
                    else Error("ORGANIZATION_NOT_FOUND", "Organization not found")
                )
                await reject(ClientError(error, status.HTTP_403_FORBIDDEN), **audit)

        if policy.audited_resource:
            async with uow:
                await AuditLedger(uow).record_best_effort(
                    "sensitive_resource_accessed",
                    resource=policy.audited_resource,
                    risk_level=RiskLevel.medium,
                    metadata={"path": request.url.path, "method": request.method},
                    **audit,
                )

        return context

    @staticmethod
    async def _live_membership_role(
        uow: UnitOfWork, claims: AccessClaims, organization_id: str
    ) -> Optional[str]:
        """
        The role held in organization_id, or None. The token must list the
        membership and storage must still hold it active.
        """
        try:
            organization_uuid = UUID(str(organization_id))
        except ValueError:
            return None
        if claims.membership_for(str(organization_uuid)) is None:
            return None

        async with uow:
            membership = await uow.memberships.get_by_user_and_organization(
                UUID(claims.user_id), organization_uuid
            )
            if membership is None or membership.status != MembershipStatus.active:
                return None
            organization = await uow.organizations.get_by_id(organization_uuid)
            if organization is None or organization.status != OrganizationStatus.active:
                return None
            return getattr(membership.role, "value", membership.role)

    @staticmethod
    async def _entitlements(
        uow: UnitOfWork,
        claims: AccessClaims,
        context: AuthorizationContext,
    ) -> Optional[Entitlements]:
        # The token snapshot only describes the primary organization
        if context.organization_id == claims.primary_organization_id:
            snapshot = _snapshot_entitlements(claims)
            if snapshot is not None:
                return snapshot
        async with uow:
            return await SubscriptionEntitlementEngine(uow).current_entitlements(
                UUID(context.organization_id)
            )


def authorize(**policy) -> AuthorizationChain:
    return AuthorizationChain(RoutePolicy(**policy))


def require_auth() -> AuthorizationChain:
    return authorize()


def require_role(*roles, **policy) -> AuthorizationChain:
    """Flat allow-list: the caller's role must be one of roles."""
    return authorize(roles=tuple(roles), **policy)


def require_role_level(min_role, **policy) -> AuthorizationChain:
    """Hierarchy minimum: the caller's role must be at least min_role."""
    return authorize(min_role=min_role, **policy)


def require_permission(permission, **policy) -> AuthorizationChain:
    return authorize(permission=permission, **policy)


def require_active_subscription(**policy) -> AuthorizationChain:
    return authorize(active_subscription=True, **policy)


def require_feature(feature: str, **policy) -> AuthorizationChain:
    return authorize(feature=feature, **policy)


def require_tier(min_tier, **policy) -> AuthorizationChain:
    return authorize(min_tier=min_tier, **policy)


def check_quota(kind: ResourceKind, **policy) -> AuthorizationChain:
    return authorize(quota=kind, **policy)
