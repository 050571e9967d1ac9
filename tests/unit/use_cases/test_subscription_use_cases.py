from datetime import datetime, timedelta, timezone

import pytest

from haven_auth.app.use_cases.subscriptions import (
    ApplySubscriptionEventUseCase,
    GetCurrentEntitlementsUseCase,
    ReleaseUsageUseCase,
    ReserveUsageUseCase,
    SubscriptionEventCommand,
    SubscriptionEventType,
)
from haven_auth.app.use_cases.subscriptions.apply_subscription_event_use_case import (
    ALLOWED_TRANSITIONS,
)
from haven_auth.domain.entities import ResourceKind, SubscriptionStatus, SubscriptionTier
from tests.unit.helpers import audited_actions, audited_events, make_organization

E = SubscriptionEventType


@pytest.fixture
def organization(mock_uow):
    organization = make_organization(
        tier=SubscriptionTier.trial, subscription_status=SubscriptionStatus.trial
    )
    mock_uow.organizations.get_by_id.return_value = organization
    mock_uow.organizations.update.side_effect = lambda org: org
    return organization


def _apply(mock_uow, clock, organization, event_type, **fields):
    return ApplySubscriptionEventUseCase(mock_uow, clock).execute(
        organization.id, SubscriptionEventCommand(event_type=event_type, **fields)
    )


class TestApplySubscriptionEvent:
    @pytest.mark.asyncio
    async def test_activation_from_trial(self, mock_uow, clock, now, organization):
        result = await _apply(mock_uow, clock, organization, E.activated)

        assert result.value.subscription_status == "active"
        assert result.value.previous_status == "trial"
        assert organization.subscription_status == SubscriptionStatus.active
        assert organization.subscription_start_date == now
        [event] = audited_events(mock_uow)
        assert event.action == "subscription_activated"
        assert event.actor == "system"

    @pytest.mark.asyncio
    async def test_cancelled_is_terminal(self, mock_uow, clock, organization):
        organization.subscription_status = SubscriptionStatus.cancelled

        for event_type in (E.activated, E.renewed, E.paused, E.payment_failed):
            result = await _apply(mock_uow, clock, organization, event_type)
            assert result.error.code == "INVALID_SUBSCRIPTION_TRANSITION"
            assert result.error.context["currentStatus"] == "cancelled"

        assert organization.subscription_status == SubscriptionStatus.cancelled
        mock_uow.organizations.update.assert_not_awaited()
        assert set(audited_actions(mock_uow)) == {"subscription_event_rejected"}

    @pytest.mark.asyncio
    async def test_paused_can_only_be_cancelled(self, mock_uow, clock, organization):
        organization.subscription_status = SubscriptionStatus.paused

        rejected = await _apply(mock_uow, clock, organization, E.activated)
        cancelled = await _apply(mock_uow, clock, organization, E.cancelled)

        assert rejected.error.code == "INVALID_SUBSCRIPTION_TRANSITION"
        assert cancelled.value.subscription_status == "cancelled"

    @pytest.mark.asyncio
    async def test_past_due_recovers_on_renewal(self, mock_uow, clock, organization):
        organization.subscription_status = SubscriptionStatus.past_due
        period_end = datetime(2026, 4, 2, 9, 30, tzinfo=timezone.utc)

        result = await _apply(
            mock_uow, clock, organization, E.renewed, current_period_end=period_end
        )

        assert result.value.subscription_status == "active"
        assert organization.subscription_end_date == datetime(2026, 4, 2, 9, 30)

    @pytest.mark.asyncio
    async def test_renewal_of_active_subscription_keeps_status(self, mock_uow, clock, organization):
        organization.subscription_status = SubscriptionStatus.active

        result = await _apply(mock_uow, clock, organization, E.renewed)

        assert result.is_ok()
        assert result.value.previous_status == "active"
        assert result.value.subscription_status == "active"

    @pytest.mark.asyncio
    async def test_tier_change_applies_plan_defaults(self, mock_uow, clock, organization):
        organization.subscription_status = SubscriptionStatus.active

        result = await _apply(
            mock_uow, clock, organization, E.tier_changed, tier=SubscriptionTier.enterprise
        )

        assert result.value.subscription_tier == SubscriptionTier.enterprise
        assert organization.max_residents is None
        assert organization.features_enabled["ai_analytics"] is True
        assert organization.subscription_status == SubscriptionStatus.active

    @pytest.mark.asyncio
    async def test_tier_change_needs_a_tier(self, mock_uow, clock, organization):
        result = await _apply(mock_uow, clock, organization, E.tier_changed)

        assert result.error.code == "TIER_REQUIRED"

    @pytest.mark.asyncio
    async def test_unknown_organization(self, mock_uow, clock, organization):
        mock_uow.organizations.get_by_id.return_value = None

        result = await _apply(mock_uow, clock, organization, E.activated)

        assert result.error.code == "ORGANIZATION_NOT_FOUND"

    def test_transition_table_shape(self):
        assert ALLOWED_TRANSITIONS[SubscriptionStatus.cancelled] == frozenset()
        assert SubscriptionStatus.trial not in set().union(*ALLOWED_TRANSITIONS.values())


class TestEntitlementsAndUsage:
    @pytest.mark.asyncio
    async def test_expired_trial_reports_cancelled(self, mock_uow, clock, now, organization):
        organization.trial_end_date = now - timedelta(days=1)

        result = await GetCurrentEntitlementsUseCase(mock_uow, clock).execute(organization.id)

        assert result.value.status == SubscriptionStatus.cancelled
        assert result.value.features["core_housing"] is True

    @pytest.mark.asyncio
    async def test_reserve_within_ceiling(self, mock_uow, clock, organization):
        mock_uow.organizations.reserve_usage.return_value = True
        organization.current_resident_count = 4

        result = await ReserveUsageUseCase(mock_uow, clock).execute(
            organization.id, ResourceKind.residents, "user-1"
        )

        assert result.value.current == 4
        assert result.value.max == 10
        mock_uow.organizations.reserve_usage.assert_awaited_once_with(
            organization.id, ResourceKind.residents
        )
        mock_uow.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reserve_at_ceiling_returns_quota_error(self, mock_uow, clock, organization):
        mock_uow.organizations.reserve_usage.return_value = False
        organization.current_resident_count = 10

        result = await ReserveUsageUseCase(mock_uow, clock).execute(
            organization.id, ResourceKind.residents, "user-1"
        )

        assert result.error.code == "Resident limit reached"
        assert result.error.context["currentCount"] == 10
        assert result.error.context["maxAllowed"] == 10
        assert result.error.context["requiredUpgrade"] == "professional"
        assert audited_actions(mock_uow) == ["quota_exceeded"]

    @pytest.mark.asyncio
    async def test_release_at_zero(self, mock_uow, clock, organization):
        mock_uow.organizations.release_usage.return_value = False

        result = await ReleaseUsageUseCase(mock_uow, clock).execute(
            organization.id, ResourceKind.properties
        )

        assert result.error.code == "NOTHING_TO_RELEASE"
        mock_uow.commit.assert_not_awaited()
