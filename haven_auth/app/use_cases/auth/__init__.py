"""
Authentication Use Cases

All authentication-related business logic.
"""

from .signup_use_case import SignupUseCase
from .signup_dto import SignupCommand
from .login_use_case import LoginUseCase
from .verify_mfa_use_case import VerifyMfaUseCase
from .setup_mfa_use_case import EnableMfaUseCase, SetupMfaUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .sso_login_use_case import SsoLoginUseCase
from .request_password_reset_use_case import RequestPasswordResetUseCase
from .confirm_password_reset_use_case import ConfirmPasswordResetUseCase
from .dtos import (
    AuthTokensResponse,
    MfaChallengeResponse,
    MfaSetupResponse,
    OrganizationInfo,
    StatusResponse,
    UserInfo,
)

__all__ = [
    # Use Cases
    "SignupUseCase",
    "LoginUseCase",
    "VerifyMfaUseCase",
    "SetupMfaUseCase",
    "EnableMfaUseCase",
    "RefreshTokenUseCase",
    "SsoLoginUseCase",
    "RequestPasswordResetUseCase",
    "ConfirmPasswordResetUseCase",
    # DTOs - Commands
    "SignupCommand",
    # DTOs - Responses
    "AuthTokensResponse",
    "MfaChallengeResponse",
    "MfaSetupResponse",
    "StatusResponse",
    # DTOs - Nested Models
    "UserInfo",
    "OrganizationInfo",
]
