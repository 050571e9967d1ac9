import pyotp
import pytest

from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.use_cases.auth import EnableMfaUseCase, SetupMfaUseCase, VerifyMfaUseCase
from tests.unit.helpers import (
    audited_actions,
    make_membership,
    make_organization,
    make_token_service,
    make_user,
)

SECRET = "JBSWY3DPEHPK3PXP"


@pytest.fixture
def token_service():
    return make_token_service()


@pytest.fixture
def mfa_user(mock_uow):
    user = make_user(mfa_enabled=True, mfa_secret=SECRET)
    organization = make_organization()
    mock_uow.users.get_by_id.return_value = user
    mock_uow.memberships.get_by_user_id.return_value = [make_membership(user, organization)]
    mock_uow.organizations.get_many.return_value = [organization]
    mock_uow.rate_limits.hit.return_value = 1
    return user


@pytest.fixture
def use_case(mock_uow, token_service, clock):
    return VerifyMfaUseCase(mock_uow, token_service, LockoutPolicy(), clock=clock)


@pytest.mark.asyncio
async def test_valid_code_issues_mfa_verified_tokens(use_case, mfa_user, token_service, mock_uow):
    challenge = token_service.issue_mfa_challenge(str(mfa_user.id))

    result = await use_case.execute(challenge, pyotp.TOTP(SECRET).now())

    assert result.is_ok()
    assert token_service.verify(result.value.access_token).mfa_verified is True
    assert audited_actions(mock_uow) == ["login"]
    mock_uow.rate_limits.hit.assert_awaited_once()
    [released_key] = mock_uow.rate_limits.release.await_args.args
    assert released_key == mock_uow.rate_limits.hit.await_args.args[0]


@pytest.mark.asyncio
async def test_wrong_code_counts_against_mfa_bucket_only(use_case, mfa_user, token_service, mock_uow):
    challenge = token_service.issue_mfa_challenge(str(mfa_user.id))

    result = await use_case.execute(challenge, "abcdef")

    assert result.error.code == "INVALID_MFA_CODE"
    mock_uow.rate_limits.hit.assert_awaited_once()
    key = mock_uow.rate_limits.hit.await_args.args[0]
    assert key.startswith(f"mfa:{mfa_user.id}:")
    mock_uow.rate_limits.release.assert_not_awaited()
    mock_uow.users.claim_login_attempt.assert_not_awaited()
    assert audited_actions(mock_uow) == ["mfa_failed"]


@pytest.mark.asyncio
async def test_attempt_over_the_limit_is_rejected_before_the_code_is_checked(
    use_case, mfa_user, token_service, mock_uow
):
    mock_uow.rate_limits.hit.return_value = 6
    challenge = token_service.issue_mfa_challenge(str(mfa_user.id))

    result = await use_case.execute(challenge, pyotp.TOTP(SECRET).now())

    assert result.error.code == "RATE_LIMITED"
    assert result.error.context["retryAfter"] > 0
    mock_uow.users.get_by_id.assert_not_awaited()
    mock_uow.rate_limits.release.assert_not_awaited()
    assert audited_actions(mock_uow) == ["mfa_rate_limited"]


@pytest.mark.asyncio
async def test_access_token_is_not_an_mfa_challenge(use_case, mfa_user, token_service, mock_uow):
    result = await use_case.execute("not-a-jwt", "123456")

    assert result.error.code == "TOKEN_INVALID"
    mock_uow.rate_limits.hit.assert_not_awaited()


@pytest.mark.asyncio
async def test_setup_stores_fresh_secret(mock_uow):
    user = make_user(email="ops@example.com")
    mock_uow.users.get_by_id.return_value = user

    result = await SetupMfaUseCase(mock_uow).execute(str(user.id))

    assert result.is_ok()
    assert result.value.secret == user.mfa_secret
    assert result.value.provisioning_uri.startswith("otpauth://totp/")
    assert user.mfa_enabled is False
    mock_uow.users.update.assert_awaited_once_with(user)


@pytest.mark.asyncio
async def test_setup_rejected_when_already_enabled(mock_uow):
    user = make_user(mfa_enabled=True, mfa_secret=SECRET)
    mock_uow.users.get_by_id.return_value = user

    result = await SetupMfaUseCase(mock_uow).execute(str(user.id))

    assert result.error.code == "MFA_ALREADY_ENABLED"


@pytest.mark.asyncio
async def test_enable_requires_valid_code(mock_uow):
    user = make_user(mfa_secret=SECRET)
    mock_uow.users.get_by_id.return_value = user

    rejected = await EnableMfaUseCase(mock_uow).execute(str(user.id), "abc")
    assert rejected.error.code == "INVALID_MFA_CODE"
    assert user.mfa_enabled is False

    enabled = await EnableMfaUseCase(mock_uow).execute(str(user.id), pyotp.TOTP(SECRET).now())
    assert enabled.value.status == "enabled"
    assert user.mfa_enabled is True
    assert audited_actions(mock_uow) == ["mfa_enabled"]


@pytest.mark.asyncio
async def test_enable_without_setup(mock_uow):
    user = make_user()
    mock_uow.users.get_by_id.return_value = user

    result = await EnableMfaUseCase(mock_uow).execute(str(user.id), "123456")

    assert result.error.code == "MFA_NOT_SET_UP"
