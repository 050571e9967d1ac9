from datetime import timedelta
from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Request, Response, status
from pydantic import BaseModel, EmailStr, Field

from haven_auth.api.error import ClientError, ServerError
from haven_auth.api.utils.cookies import clear_auth_cookies, set_auth_cookies
from haven_auth.api.utils.guards import AuthorizationContext, require_auth
from haven_auth.api.utils.rate_limit import rate_limit
from haven_auth.api.utils.request_context import (
    REFRESH_TOKEN_COOKIE,
    client_ip,
    verify_csrf,
)
from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.app.use_cases.auth import (
    AuthTokensResponse,
    ConfirmPasswordResetUseCase,
    EnableMfaUseCase,
    LoginUseCase,
    MfaChallengeResponse,
    MfaSetupResponse,
    RefreshTokenUseCase,
    RequestPasswordResetUseCase,
    SetupMfaUseCase,
    SignupCommand,
    SignupUseCase,
    SsoLoginUseCase,
    StatusResponse,
    VerifyMfaUseCase,
)
from haven_auth.depends import (
    get_config,
    get_identity_providers,
    get_lockout_policy,
    get_token_service,
    get_unit_of_work,
)
from haven_auth.domain.claims import TokenPair
from haven_auth.libs.result import Error

router = APIRouter(prefix="/auth", tags=["Authentication"])

ERROR_STATUS = {
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "ACCOUNT_LOCKED": status.HTTP_401_UNAUTHORIZED,
    "TOKEN_EXPIRED": status.HTTP_401_UNAUTHORIZED,
    "TOKEN_INVALID": status.HTTP_401_UNAUTHORIZED,
    "INVALID_MFA_CODE": status.HTTP_401_UNAUTHORIZED,
    "USER_DISABLED": status.HTTP_403_FORBIDDEN,
    "TENANT_RESOLUTION_FAILED": status.HTTP_403_FORBIDDEN,
    "EMAIL_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "MFA_ALREADY_ENABLED": status.HTTP_409_CONFLICT,
    "MFA_NOT_SET_UP": status.HTTP_400_BAD_REQUEST,
    "INVALID_PASSWORD": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_400_BAD_REQUEST,
    "TOKEN_ALREADY_USED": status.HTTP_400_BAD_REQUEST,
    "USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PROVIDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RATE_LIMITED": status.HTTP_429_TOO_MANY_REQUESTS,
}


def _raise_for(error: Error):
    status_code = ERROR_STATUS.get(error.code)
    if status_code is None:
        raise ServerError(error)
    headers = None
    if "retryAfter" in error.context:
        headers = {"Retry-After": str(error.context["retryAfter"])}
    raise ClientError(error, status_code=status_code, headers=headers)


def _issue_cookies(response: Response, result: AuthTokensResponse, config):
    set_auth_cookies(
        response,
        TokenPair(
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            expires_in=result.expires_in,
        ),
        refresh_max_age=int(timedelta(days=config.REFRESH_TOKEN_TTL_DAYS).total_seconds()),
        secure=config.COOKIE_SECURE,
    )


class SignupRequest(BaseModel):
    """
    Signup HTTP request payload

    Validates incoming HTTP request before converting to SignupCommand.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="User password (min 8 chars)")
    organization_name: str = Field(
        ..., min_length=1, max_length=255, description="Organization name"
    )


@router.post(
    "/signup", status_code=status.HTTP_201_CREATED, response_model=AuthTokensResponse
)
async def signup(
    request: SignupRequest,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
    config=Depends(get_config),
):
    """
    Creates the user, a trial organization and an admin membership.

    Raises:
        - 409 Conflict: Email already exists
        - 422 Unprocessable Entity: Invalid input (handled by FastAPI)
    """
    command = SignupCommand(
        email=request.email,
        password=request.password,
        organization_name=request.organization_name,
    )

    use_case = SignupUseCase(uow, token_service, trial_days=config.TRIAL_DAYS)
    result = await use_case.execute(command)

    if result.is_err():
        _raise_for(result.error)

    _issue_cookies(response, result.value, config)
    return result.value


class LoginRequest(BaseModel):
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., description="User password")


@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    response_model=Union[AuthTokensResponse, MfaChallengeResponse],
    dependencies=[Depends(rate_limit("login"))],
)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
    lockout_policy: LockoutPolicy = Depends(get_lockout_policy),
    config=Depends(get_config),
):
    """
    Password login. Accounts with MFA enabled get an MFA challenge instead
    of tokens; finish with POST /auth/mfa/verify.

    Raises:
        - 401 Unauthorized: INVALID_CREDENTIALS, ACCOUNT_LOCKED (retryAfter)
        - 403 Forbidden: USER_DISABLED, TENANT_RESOLUTION_FAILED
        - 429 Too Many Requests: RATE_LIMITED
    """
    use_case = LoginUseCase(uow, token_service, lockout_policy)
    result = await use_case.execute(body.email, body.password, client_ip(request))

    if result.is_err():
        _raise_for(result.error)

    if isinstance(result.value, AuthTokensResponse):
        _issue_cookies(response, result.value, config)
    return result.value


class VerifyMfaRequest(BaseModel):
    mfa_token: str
    code: str = Field(..., min_length=6, max_length=8)


@router.post("/mfa/verify", status_code=status.HTTP_200_OK, response_model=AuthTokensResponse)
async def verify_mfa(
    body: VerifyMfaRequest,
    request: Request,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
    lockout_policy: LockoutPolicy = Depends(get_lockout_policy),
    config=Depends(get_config),
):
    """
    Second login step. Tokens issued here carry mfaVerified=true.

    Raises:
        - 401 Unauthorized: TOKEN_EXPIRED, TOKEN_INVALID, INVALID_MFA_CODE
        - 429 Too Many Requests: RATE_LIMITED
    """
    use_case = VerifyMfaUseCase(
        uow,
        token_service,
        lockout_policy,
        max_attempts=config.MFA_RATE_LIMIT_ATTEMPTS,
        window=timedelta(minutes=config.MFA_RATE_LIMIT_WINDOW_MINUTES),
    )
    result = await use_case.execute(body.mfa_token, body.code, client_ip(request))

    if result.is_err():
        _raise_for(result.error)

    _issue_cookies(response, result.value, config)
    return result.value


@router.post("/mfa/setup", status_code=status.HTTP_200_OK, response_model=MfaSetupResponse)
async def setup_mfa(
    ctx: AuthorizationContext = Depends(require_auth()),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Generates a TOTP secret; MFA stays off until /auth/mfa/enable."""
    result = await SetupMfaUseCase(uow).execute(ctx.user_id)

    if result.is_err():
        _raise_for(result.error)

    return result.value


class EnableMfaRequest(BaseModel):
    code: str = Field(..., min_length=6, max_length=8)


@router.post("/mfa/enable", status_code=status.HTTP_200_OK, response_model=StatusResponse)
async def enable_mfa(
    body: EnableMfaRequest,
    ctx: AuthorizationContext = Depends(require_auth()),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    result = await EnableMfaUseCase(uow).execute(ctx.user_id, body.code)

    if result.is_err():
        _raise_for(result.error)

    return result.value


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = Field(
        None, description="Refresh token; falls back to the refresh_token cookie"
    )


@router.post("/refresh", status_code=status.HTTP_200_OK, response_model=AuthTokensResponse)
async def refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
    config=Depends(get_config),
):
    """
    Re-resolves the tenant context from storage and reissues both tokens.

    Raises:
        - 401 Unauthorized: TOKEN_EXPIRED, TOKEN_INVALID
        - 403 Forbidden: TENANT_RESOLUTION_FAILED (no active membership left)
    """
    refresh_token = body.refresh_token if body else None
    if not refresh_token:
        refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
        if refresh_token:
            verify_csrf(request)
    if not refresh_token:
        raise ClientError(
            Error("UNAUTHORIZED", "Refresh token required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    result = await RefreshTokenUseCase(uow, token_service).execute(refresh_token)

    if result.is_err():
        _raise_for(result.error)

    _issue_cookies(response, result.value, config)
    return result.value


@router.post("/logout", status_code=status.HTTP_200_OK, response_model=StatusResponse)
async def logout(response: Response):
    """Tokens are stateless; logout clears the browser cookies."""
    clear_auth_cookies(response)
    return StatusResponse(status="logged_out", message="Logged out")


class SsoCallbackRequest(BaseModel):
    code: str = Field(..., min_length=1)
    redirect_uri: Optional[str] = None


@router.post(
    "/sso/{provider}/callback",
    status_code=status.HTTP_200_OK,
    response_model=AuthTokensResponse,
)
async def sso_callback(
    provider: str,
    body: SsoCallbackRequest,
    response: Response,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
    identity_providers: Dict[str, Any] = Depends(get_identity_providers),
    config=Depends(get_config),
):
    """
    Completes an OAuth/OIDC login. Provider failure or timeout is reported
    as INVALID_CREDENTIALS.
    """
    identity_provider = identity_providers.get(provider)
    if identity_provider is None:
        _raise_for(Error("PROVIDER_NOT_FOUND", f"Unknown identity provider: {provider}"))

    use_case = SsoLoginUseCase(uow, token_service, timeout_seconds=config.IDP_TIMEOUT_SECONDS)
    result = await use_case.execute(identity_provider, body.model_dump())

    if result.is_err():
        _raise_for(result.error)

    _issue_cookies(response, result.value, config)
    return result.value


class PasswordResetRequest(BaseModel):
    email: EmailStr


@router.post(
    "/password-reset/request",
    status_code=status.HTTP_200_OK,
    response_model=StatusResponse,
    dependencies=[Depends(rate_limit("password_reset"))],
)
async def request_password_reset(
    body: PasswordResetRequest,
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Always answers "sent" so the endpoint cannot be used to discover which emails exist."""
    result = await RequestPasswordResetUseCase(uow).execute(body.email, client_ip(request))

    if result.is_err():
        _raise_for(result.error)

    return result.value


class ConfirmPasswordResetRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: str


@router.post(
    "/password-reset/confirm",
    status_code=status.HTTP_200_OK,
    response_model=StatusResponse,
    dependencies=[Depends(rate_limit("password_reset"))],
)
async def confirm_password_reset(
    body: ConfirmPasswordResetRequest,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Raises:
        - 400 Bad Request: INVALID_PASSWORD, INVALID_TOKEN, TOKEN_EXPIRED,
          TOKEN_ALREADY_USED
    """
    result = await ConfirmPasswordResetUseCase(uow).execute(body.token, body.new_password)

    if result.is_err():
        error = result.error
        if error.code == "TOKEN_EXPIRED":
            raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)
        _raise_for(error)

    return result.value
