from datetime import timedelta
from uuid import uuid4

from haven_auth.app.services.token_service import TokenService
from haven_auth.domain.entities import (
    Membership,
    MembershipRole,
    MembershipStatus,
    Organization,
    SubscriptionStatus,
    SubscriptionTier,
    User,
)
from haven_auth.domain.plans import PLAN_CATALOG

ACCESS_SECRET = "unit-access-secret-0123456789abcdef"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdef"


def make_token_service(clock=None) -> TokenService:
    kwargs = {"clock": clock} if clock else {}
    return TokenService(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        issuer="havenhub.app",
        audience="havenhub-api",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
        **kwargs,
    )


def make_user(**overrides) -> User:
    fields = {"id": uuid4(), "email": "user@example.com", "is_active": True}
    fields.update(overrides)
    return User(**fields)


def make_organization(tier=SubscriptionTier.professional, **overrides) -> Organization:
    plan = PLAN_CATALOG[tier]
    fields = {
        "id": uuid4(),
        "name": "Riverside Housing",
        "subscription_tier": tier,
        "subscription_status": SubscriptionStatus.active,
        "features_enabled": dict(plan.features),
        "max_residents": plan.max_residents,
        "max_properties": plan.max_properties,
    }
    fields.update(overrides)
    return Organization(**fields)


def make_membership(user, organization, role=MembershipRole.admin, **overrides) -> Membership:
    fields = {
        "id": uuid4(),
        "user_id": user.id,
        "organization_id": organization.id,
        "role": role,
        "status": MembershipStatus.active,
    }
    fields.update(overrides)
    return Membership(**fields)


def audited_actions(uow):
    return [call.args[0].action for call in uow.audit_events.create.await_args_list]


def audited_events(uow):
    return [call.args[0] for call in uow.audit_events.create.await_args_list]
