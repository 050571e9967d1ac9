from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import Depends
from sqlmodel import select

from haven_auth.api.utils.guards import (
    AuthorizationContext,
    require_feature,
    require_permission,
    require_role,
    require_role_level,
    require_tier,
)
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import (
    MembershipRole,
    Organization,
    RiskLevel,
    SubscriptionStatus,
    SubscriptionTier,
)
from haven_auth.domain.permissions import Permission
from tests.integration.helpers import bearer, login, signup


@pytest_asyncio.fixture
async def guarded_app(app):
    """Business-style routes guarded the way downstream services guard theirs."""

    @app.get("/business/ai-analytics")
    async def ai_analytics(ctx: AuthorizationContext = Depends(require_feature("ai_analytics"))):
        return {"organization_id": ctx.organization_id}

    @app.get("/business/manager-area")
    async def manager_area(
        ctx: AuthorizationContext = Depends(require_role_level(MembershipRole.manager)),
    ):
        return {"role": ctx.role}

    @app.get("/business/finance-desk")
    async def finance_desk(
        ctx: AuthorizationContext = Depends(
            require_role(MembershipRole.finance_officer, MembershipRole.admin)
        ),
    ):
        return {"role": ctx.role}

    @app.get("/business/enterprise")
    async def enterprise(
        ctx: AuthorizationContext = Depends(require_tier(SubscriptionTier.enterprise)),
    ):
        return {"tier": ctx.entitlements.tier}

    @app.get("/business/rent-ledger")
    async def rent_ledger(
        ctx: AuthorizationContext = Depends(require_permission(Permission.FINANCIAL_READ)),
    ):
        return {"organization_id": ctx.organization_id}

    @app.get("/business/properties")
    async def properties(
        ctx: AuthorizationContext = Depends(require_permission(Permission.PROPERTIES_READ)),
    ):
        return {"organization_id": ctx.organization_id}

    return app


@pytest.mark.asyncio
async def test_expired_trial_reports_cancelled(client, session_factory):
    created = await signup(client, "founder@acme.com")
    organization_id = created["primary_organization"]["id"]

    async with session_factory() as session:
        organization = (
            await session.exec(select(Organization).where(Organization.name == "Acme Housing"))
        ).one()
        organization.trial_end_date = utcnow() - timedelta(days=1)
        session.add(organization)
        await session.commit()

    response = await client.get("/entitlements", headers=bearer(created["access_token"]))

    assert response.status_code == 200
    data = response.json()
    assert data["organization_id"] == organization_id
    assert data["tier"] == "trial"
    assert data["status"] == "cancelled"


@pytest.mark.asyncio
async def test_live_entitlements_for_member_organization(client, member_factory):
    _, organization = await member_factory("user@example.com", tier=SubscriptionTier.enterprise)
    tokens = await login(client, "user@example.com")

    response = await client.get(
        f"/organizations/{organization.id}/entitlements", headers=bearer(tokens["access_token"])
    )

    assert response.status_code == 200
    assert response.json()["features"]["custom_integrations"] is True
    assert response.json()["limits"]["residents"]["max"] is None


@pytest.mark.asyncio
async def test_cross_organization_access_denied(client, member_factory, audit_rows):
    await member_factory("alice@example.com")
    _, other_organization = await member_factory("bob@example.com")
    tokens = await login(client, "alice@example.com")

    response = await client.get(
        f"/organizations/{other_organization.id}/entitlements",
        headers=bearer(tokens["access_token"]),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "ORGANIZATION_ACCESS_DENIED"
    [denied] = await audit_rows("access_denied")
    assert denied.risk_level == RiskLevel.high


@pytest.mark.asyncio
async def test_second_membership_grants_scoped_access(client, member_factory):
    _, shared = await member_factory("owner@example.com")
    await member_factory("consultant@example.com", role=MembershipRole.readonly, organization=shared)
    tokens = await login(client, "consultant@example.com")

    response = await client.get(
        f"/organizations/{shared.id}/entitlements", headers=bearer(tokens["access_token"])
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_feature_gate(guarded_app, client, member_factory):
    await member_factory("pro@example.com", tier=SubscriptionTier.professional)
    await member_factory("ent@example.com", tier=SubscriptionTier.enterprise)

    professional = await login(client, "pro@example.com")
    denied = await client.get("/business/ai-analytics", headers=bearer(professional["access_token"]))
    assert denied.status_code == 403
    assert denied.json()["error"] == "FEATURE_NOT_AVAILABLE"
    assert denied.json()["featureName"] == "ai_analytics"
    assert denied.json()["currentTier"] == "professional"

    enterprise = await login(client, "ent@example.com")
    allowed = await client.get("/business/ai-analytics", headers=bearer(enterprise["access_token"]))
    assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_role_hierarchy_and_allow_list(guarded_app, client, member_factory):
    await member_factory("officer@example.com", role=MembershipRole.housing_officer)
    await member_factory("finance@example.com", role=MembershipRole.finance_officer)
    officer = bearer((await login(client, "officer@example.com"))["access_token"])
    finance = bearer((await login(client, "finance@example.com"))["access_token"])

    too_junior = await client.get("/business/manager-area", headers=officer)
    assert too_junior.status_code == 403
    assert too_junior.json()["error"] == "INSUFFICIENT_ROLE"
    assert too_junior.json()["requiredRole"] == "manager"

    not_listed = await client.get("/business/finance-desk", headers=officer)
    assert not_listed.status_code == 403
    assert not_listed.json()["currentRole"] == "housing_officer"

    listed = await client.get("/business/finance-desk", headers=finance)
    assert listed.json() == {"role": "finance_officer"}


@pytest.mark.asyncio
async def test_tier_gate(guarded_app, client, member_factory):
    await member_factory("starter@example.com", tier=SubscriptionTier.starter)
    tokens = await login(client, "starter@example.com")

    response = await client.get("/business/enterprise", headers=bearer(tokens["access_token"]))

    assert response.status_code == 403
    assert response.json()["error"] == "INSUFFICIENT_TIER"
    assert response.json()["requiredTier"] == "enterprise"


@pytest.mark.asyncio
async def test_inactive_subscription_blocks_gated_routes(guarded_app, client, member_factory):
    await member_factory(
        "late@example.com",
        tier=SubscriptionTier.enterprise,
        status=SubscriptionStatus.past_due,
    )
    tokens = await login(client, "late@example.com")

    # Feature and tier gates read the plan; a past-due plan still lists them
    response = await client.get("/business/enterprise", headers=bearer(tokens["access_token"]))
    assert response.status_code == 200

    reserve = await client.post(
        f"/organizations/{tokens['primary_organization']['id']}/usage/residents",
        headers=bearer(tokens["access_token"]),
    )
    assert reserve.status_code == 403
    assert reserve.json()["error"] == "SUBSCRIPTION_INACTIVE"
    assert reserve.json()["subscriptionStatus"] == "past_due"


@pytest.mark.asyncio
async def test_financial_access_is_audited_without_route_opt_in(
    guarded_app, client, member_factory, audit_rows
):
    manager, organization = await member_factory("manager@example.com", MembershipRole.manager)
    tokens = await login(client, "manager@example.com")

    ledger = await client.get("/business/rent-ledger", headers=bearer(tokens["access_token"]))
    properties = await client.get("/business/properties", headers=bearer(tokens["access_token"]))

    assert ledger.status_code == 200
    assert properties.status_code == 200
    [event] = await audit_rows("sensitive_resource_accessed")
    assert event.resource == "financial"
    assert event.user_id == manager.id
    assert event.organization_id == organization.id
    assert event.risk_level == RiskLevel.medium
    assert event.event_metadata["path"] == "/business/rent-ledger"


@pytest.mark.asyncio
async def test_denied_financial_access_is_not_recorded_as_access(
    guarded_app, client, member_factory, audit_rows
):
    await member_factory("officer@example.com", MembershipRole.housing_officer)
    tokens = await login(client, "officer@example.com")

    response = await client.get("/business/rent-ledger", headers=bearer(tokens["access_token"]))

    assert response.status_code == 403
    assert response.json()["error"] == "INSUFFICIENT_PERMISSION"
    assert await audit_rows("sensitive_resource_accessed") == []
    [denied] = await audit_rows("access_denied")
    assert denied.event_metadata["error"] == "INSUFFICIENT_PERMISSION"
