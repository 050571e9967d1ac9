import pytest

from haven_auth.domain.entities import SubscriptionStatus, SubscriptionTier
from tests.integration.conftest import ADMIN_API_KEY

ADMIN_HEADERS = {"X-Admin-API-Key": ADMIN_API_KEY}


def _events_url(organization) -> str:
    return f"/admin/organizations/{organization.id}/subscription-events"


@pytest.mark.asyncio
async def test_api_key_required(client, member_factory):
    _, organization = await member_factory("user@example.com")

    missing = await client.post(_events_url(organization), json={"event_type": "paused"})
    wrong = await client.post(
        _events_url(organization),
        json={"event_type": "paused"},
        headers={"X-Admin-API-Key": "not-the-key"},
    )

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert wrong.json()["error"] == "INVALID_API_KEY"


@pytest.mark.asyncio
async def test_trial_activation_then_tier_change(client, member_factory, audit_rows):
    _, organization = await member_factory(
        "user@example.com", tier=SubscriptionTier.trial, status=SubscriptionStatus.trial
    )

    activated = await client.post(
        _events_url(organization),
        json={
            "event_type": "activated",
            "tier": "starter",
            "current_period_end": "2099-01-01T00:00:00Z",
            "external_event_id": "evt_1",
        },
        headers=ADMIN_HEADERS,
    )
    assert activated.status_code == 200
    assert activated.json()["subscription_status"] == "active"
    assert activated.json()["subscription_tier"] == "starter"

    upgraded = await client.post(
        _events_url(organization),
        json={"event_type": "tier_changed", "tier": "enterprise"},
        headers=ADMIN_HEADERS,
    )
    assert upgraded.json()["subscription_tier"] == "enterprise"
    assert upgraded.json()["subscription_status"] == "active"

    [event] = await audit_rows("subscription_activated")
    assert event.actor == "system"
    assert event.event_metadata["external_event_id"] == "evt_1"


@pytest.mark.asyncio
async def test_cancelled_subscription_cannot_be_reactivated(client, member_factory):
    _, organization = await member_factory("user@example.com", status=SubscriptionStatus.cancelled)

    response = await client.post(
        _events_url(organization), json={"event_type": "activated"}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_SUBSCRIPTION_TRANSITION"
    assert response.json()["currentStatus"] == "cancelled"


@pytest.mark.asyncio
async def test_unknown_organization(client):
    response = await client.post(
        "/admin/organizations/00000000-0000-0000-0000-000000000000/subscription-events",
        json={"event_type": "activated"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 404
