import pytest

from haven_auth.domain.entities import MembershipRole, SubscriptionTier
from tests.integration.helpers import bearer, login


@pytest.mark.asyncio
async def test_reserve_at_ceiling_is_rejected(client, member_factory, audit_rows):
    _, organization = await member_factory(
        "user@example.com", tier=SubscriptionTier.professional, current_resident_count=25
    )
    tokens = await login(client, "user@example.com")

    response = await client.post(
        f"/organizations/{organization.id}/usage/residents",
        headers=bearer(tokens["access_token"]),
    )

    assert response.status_code == 403
    data = response.json()
    assert data["error"] == "Resident limit reached"
    assert data["currentCount"] == 25
    assert data["maxAllowed"] == 25
    assert data["requiredUpgrade"] == "enterprise"
    assert len(await audit_rows("access_denied")) == 1


@pytest.mark.asyncio
async def test_reserve_and_release_move_the_live_counter(client, member_factory):
    _, organization = await member_factory(
        "user@example.com", tier=SubscriptionTier.starter, current_property_count=0
    )
    headers = bearer((await login(client, "user@example.com"))["access_token"])
    url = f"/organizations/{organization.id}/usage/properties"

    reserved = await client.post(url, headers=headers)
    assert reserved.status_code == 200
    assert reserved.json() == {
        "organization_id": str(organization.id),
        "resource_kind": "properties",
        "current": 1,
        "max": 1,
    }

    # Starter allows one property
    full = await client.post(url, headers=headers)
    assert full.status_code == 403
    assert full.json()["error"] == "Property limit reached"

    released = await client.delete(url, headers=headers)
    assert released.json()["current"] == 0

    nothing_left = await client.delete(url, headers=headers)
    assert nothing_left.status_code == 409
    assert nothing_left.json()["error"] == "NOTHING_TO_RELEASE"


@pytest.mark.asyncio
async def test_reserve_requires_write_permission(client, member_factory):
    _, organization = await member_factory(
        "fixer@example.com", role=MembershipRole.maintenance_staff
    )
    tokens = await login(client, "fixer@example.com")

    response = await client.post(
        f"/organizations/{organization.id}/usage/residents",
        headers=bearer(tokens["access_token"]),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "INSUFFICIENT_PERMISSION"
    assert response.json()["requiredPermission"] == "residents:write"


@pytest.mark.asyncio
async def test_unknown_resource_kind(client, member_factory):
    _, organization = await member_factory("user@example.com")
    tokens = await login(client, "user@example.com")

    response = await client.post(
        f"/organizations/{organization.id}/usage/vehicles",
        headers=bearer(tokens["access_token"]),
    )

    assert response.status_code == 422
