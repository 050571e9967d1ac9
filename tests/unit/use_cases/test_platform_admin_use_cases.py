from uuid import uuid4

import pytest

from haven_auth.app.use_cases.platform_admin import (
    EmergencyActionCommand,
    EmergencyActionType,
    EmergencyActionUseCase,
    GetPlatformOverviewUseCase,
)
from haven_auth.domain.claims import TenantContext
from haven_auth.domain.entities import OrganizationStatus, RiskLevel
from tests.unit.helpers import audited_events, make_organization, make_token_service, make_user

REASON = "Suspected credential stuffing against this tenant"


def _operator_claims(mfa_verified=True, role="platform_admin"):
    token_service = make_token_service()
    user_id = str(uuid4())
    context = TenantContext(user_id=user_id, email="ops@havenhub.app", role=role)
    return token_service.verify(token_service.issue(context, mfa_verified=mfa_verified).access_token)


@pytest.fixture
def journal(mock_uow):
    """Ordered record of audit writes, commits and target mutations."""
    entries = []

    def create_event(event):
        entries.append(event.action)
        return event

    async def commit():
        entries.append("commit")

    mock_uow.audit_events.create.side_effect = create_event
    mock_uow.commit.side_effect = commit
    mock_uow.organizations.update.side_effect = lambda org: entries.append("organization_updated")
    mock_uow.users.update.side_effect = lambda user: entries.append("user_updated")
    mock_uow.password_reset_tokens.create.side_effect = lambda record: record
    return entries


class TestEmergencyAction:
    @pytest.mark.asyncio
    async def test_disable_organization_audits_intent_before_acting(self, mock_uow, clock, journal):
        organization = make_organization()
        mock_uow.organizations.get_by_id.return_value = organization

        result = await EmergencyActionUseCase(mock_uow, clock).execute(
            _operator_claims(),
            EmergencyActionCommand(
                action=EmergencyActionType.disable_organization,
                target_id=str(organization.id),
                reason=REASON,
            ),
        )

        assert result.value.status == "completed"
        assert organization.status == OrganizationStatus.disabled
        assert journal == [
            "emergency_action_initiated",
            "commit",
            "organization_updated",
            "emergency_action_completed",
            "commit",
        ]
        initiated, completed = audited_events(mock_uow)
        assert initiated.risk_level == RiskLevel.critical
        assert result.value.audit_event_id == str(initiated.id)
        assert completed.event_metadata["initiated_event_id"] == str(initiated.id)

    @pytest.mark.asyncio
    async def test_force_password_reset_clears_hash_and_issues_token(self, mock_uow, clock, journal):
        target = make_user(password_hash="$2b$12$existing")
        mock_uow.users.get_by_id.return_value = target

        result = await EmergencyActionUseCase(mock_uow, clock).execute(
            _operator_claims(),
            EmergencyActionCommand(
                action=EmergencyActionType.force_password_reset,
                target_id=str(target.id),
                reason=REASON,
            ),
        )

        assert result.is_ok()
        assert target.password_hash is None
        record = mock_uow.password_reset_tokens.create.await_args.args[0]
        assert record.user_id == target.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "claims_kwargs, reason, expected",
        [
            ({"role": "admin"}, REASON, "Platform admin role required"),
            ({"mfa_verified": False}, REASON, "Multi-factor authentication must be verified"),
            ({}, "because", "at least 10 characters"),
        ],
    )
    async def test_denials_are_audited_and_change_nothing(
        self, mock_uow, clock, journal, claims_kwargs, reason, expected
    ):
        organization = make_organization()
        mock_uow.organizations.get_by_id.return_value = organization

        result = await EmergencyActionUseCase(mock_uow, clock).execute(
            _operator_claims(**claims_kwargs),
            EmergencyActionCommand(
                action=EmergencyActionType.disable_organization,
                target_id=str(organization.id),
                reason=reason,
            ),
        )

        assert result.error.code == "EMERGENCY_ACTION_DENIED"
        assert expected in result.error.message
        assert result.error.context == {"authorized": False}
        assert organization.status == OrganizationStatus.active
        assert journal == ["emergency_action_denied", "commit"]
        assert audited_events(mock_uow)[0].risk_level == RiskLevel.high

    @pytest.mark.asyncio
    async def test_operator_cannot_target_self(self, mock_uow, clock):
        operator = _operator_claims()

        decision = await EmergencyActionUseCase(mock_uow, clock).check(
            operator,
            EmergencyActionCommand(
                action=EmergencyActionType.force_password_reset,
                target_id=operator.user_id,
                reason=REASON,
            ),
        )

        assert decision.authorized is False
        assert decision.reason == "Operators cannot target their own account"

    @pytest.mark.asyncio
    async def test_check_reports_missing_target_without_writing(self, mock_uow, clock):
        mock_uow.organizations.get_by_id.return_value = None

        decision = await EmergencyActionUseCase(mock_uow, clock).check(
            _operator_claims(),
            EmergencyActionCommand(
                action=EmergencyActionType.disable_organization,
                target_id=str(uuid4()),
                reason=REASON,
            ),
        )

        assert decision.reason == "Target not found"
        mock_uow.audit_events.create.assert_not_awaited()
        mock_uow.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_platform_overview_aggregates(mock_uow, clock):
    mock_uow.organizations.count_by_subscription_status.return_value = {"active": 3, "trial": 2}
    mock_uow.organizations.count_by_tier.return_value = {"trial": 2, "enterprise": 3}
    mock_uow.organizations.usage_totals.return_value = {"residents": 40, "properties": 7}
    mock_uow.memberships.count_active.return_value = 12
    mock_uow.users.count_by_role.return_value = 2
    mock_uow.audit_events.count_recent_high_risk.return_value = 5

    result = await GetPlatformOverviewUseCase(mock_uow, clock).execute()

    assert result.value.total_organizations == 5
    assert result.value.usage_totals["residents"] == 40
    assert result.value.high_risk_events_24h == 5
    assert result.value.generated_at == "2026-03-02T09:30:00Z"
    mock_uow.users.count_by_role.assert_awaited_once_with("platform_admin")
