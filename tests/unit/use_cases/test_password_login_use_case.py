from datetime import timedelta

import bcrypt
import pytest

from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.use_cases.auth import AuthTokensResponse, LoginUseCase, MfaChallengeResponse
from haven_auth.domain.entities import MembershipRole
from tests.unit.helpers import (
    audited_actions,
    make_membership,
    make_organization,
    make_token_service,
    make_user,
)

PASSWORD = "CorrectHorse9!"


def _hash(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(4)).decode()


@pytest.fixture
def token_service():
    return make_token_service()


@pytest.fixture
def use_case(mock_uow, token_service, clock):
    return LoginUseCase(mock_uow, token_service, LockoutPolicy(), clock)


@pytest.fixture
def member(mock_uow):
    user = make_user(email="officer@example.com", password_hash=_hash(PASSWORD))
    organization = make_organization()
    mock_uow.users.get_by_email.return_value = user
    mock_uow.users.get_by_id.return_value = user
    mock_uow.memberships.get_by_user_id.return_value = [
        make_membership(user, organization, MembershipRole.housing_officer)
    ]
    mock_uow.organizations.get_many.return_value = [organization]
    mock_uow.users.claim_login_attempt.return_value = 1
    mock_uow.users.settle_login_attempt.return_value = True
    return user


@pytest.mark.asyncio
async def test_successful_login_issues_tokens_and_clears_lockout(
    use_case, mock_uow, member, token_service, now
):
    result = await use_case.execute(" Officer@Example.com ", PASSWORD, "10.0.0.1")

    assert result.is_ok()
    assert isinstance(result.value, AuthTokensResponse)
    assert result.value.user.role == "housing_officer"
    claims = token_service.verify(result.value.access_token)
    assert claims.mfa_verified is False

    mock_uow.users.get_by_email.assert_awaited_once_with("officer@example.com")
    mock_uow.users.settle_login_attempt.assert_awaited_once_with(member.id, 1, now)
    mock_uow.users.clear_failed_logins.assert_awaited_once_with(member.id, now)
    assert audited_actions(mock_uow) == ["login"]
    mock_uow.commit.assert_awaited()


@pytest.mark.asyncio
async def test_unknown_user_wrong_password_and_sso_only_fail_identically(
    use_case, mock_uow, member
):
    wrong_password = await use_case.execute("officer@example.com", "nope", None)

    mock_uow.users.get_by_email.return_value = None
    unknown = await use_case.execute("ghost@example.com", PASSWORD, None)

    mock_uow.users.get_by_email.return_value = make_user(password_hash=None)
    sso_only = await use_case.execute("sso@example.com", PASSWORD, None)

    errors = [r.error for r in (wrong_password, unknown, sso_only)]
    assert {e.code for e in errors} == {"INVALID_CREDENTIALS"}
    assert len({e.message for e in errors}) == 1
    assert all(e.context == {} for e in errors)


@pytest.mark.asyncio
async def test_attempt_is_claimed_and_committed_before_the_hash_comparison(
    use_case, mock_uow, member, now
):
    mock_uow.users.claim_login_attempt.return_value = 2

    result = await use_case.execute("officer@example.com", "wrong", "10.0.0.1")

    assert result.error.code == "INVALID_CREDENTIALS"
    mock_uow.users.claim_login_attempt.assert_awaited_once_with(
        member.id,
        now=now,
        window_start=now - timedelta(minutes=30),
        max_attempts=5,
        locked_until=now + timedelta(minutes=30),
    )
    mock_uow.users.settle_login_attempt.assert_not_awaited()
    assert audited_actions(mock_uow) == ["login_failed"]
    # Once for the claim, once for the failure audit
    assert mock_uow.commit.await_count == 2


@pytest.mark.asyncio
async def test_fifth_failure_locks_account(use_case, mock_uow, member):
    mock_uow.users.claim_login_attempt.return_value = 5

    result = await use_case.execute("officer@example.com", "wrong", None)

    assert result.error.code == "INVALID_CREDENTIALS"
    assert audited_actions(mock_uow) == ["login_failed", "account_locked"]


@pytest.mark.asyncio
async def test_locked_account_rejected_without_comparing_the_hash(use_case, mock_uow, member, now):
    # bcrypt would raise on this hash if it were ever compared
    member.password_hash = "not-a-bcrypt-hash"
    mock_uow.users.claim_login_attempt.return_value = None
    mock_uow.users.get_locked_until.return_value = now + timedelta(minutes=20)

    result = await use_case.execute("officer@example.com", PASSWORD, None)

    assert result.error.code == "ACCOUNT_LOCKED"
    assert result.error.context["retryAfter"] == 20 * 60
    mock_uow.users.settle_login_attempt.assert_not_awaited()
    mock_uow.users.clear_failed_logins.assert_not_awaited()
    assert audited_actions(mock_uow) == ["login_blocked_locked"]


@pytest.mark.asyncio
async def test_correct_password_loses_to_a_concurrent_lock(use_case, mock_uow, member, now):
    mock_uow.users.claim_login_attempt.return_value = 3
    mock_uow.users.settle_login_attempt.return_value = False
    mock_uow.users.get_locked_until.return_value = now + timedelta(minutes=30)

    result = await use_case.execute("officer@example.com", PASSWORD, None)

    assert result.error.code == "ACCOUNT_LOCKED"
    assert result.error.context["retryAfter"] == 30 * 60
    mock_uow.users.clear_failed_logins.assert_not_awaited()
    assert audited_actions(mock_uow) == ["login_blocked_locked"]


@pytest.mark.asyncio
async def test_disabled_user_rejected(use_case, mock_uow, member):
    member.is_active = False

    result = await use_case.execute("officer@example.com", PASSWORD, None)

    assert result.error.code == "USER_DISABLED"


@pytest.mark.asyncio
async def test_mfa_enabled_account_gets_challenge(use_case, mock_uow, member, token_service):
    member.mfa_enabled = True
    member.mfa_secret = "JBSWY3DPEHPK3PXP"

    result = await use_case.execute("officer@example.com", PASSWORD, None)

    assert isinstance(result.value, MfaChallengeResponse)
    assert result.value.mfa_required is True
    assert token_service.verify_mfa_challenge(result.value.mfa_token) == str(member.id)
    mock_uow.users.settle_login_attempt.assert_awaited_once()
    mock_uow.users.clear_failed_logins.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_without_active_membership_fails_resolution(use_case, mock_uow, member):
    mock_uow.memberships.get_by_user_id.return_value = []

    result = await use_case.execute("officer@example.com", PASSWORD, None)

    assert result.error.code == "TENANT_RESOLUTION_FAILED"
