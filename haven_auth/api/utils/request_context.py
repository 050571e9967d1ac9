"""
Request Context

Token extraction and verification shared by every protected route.

Tokens come from the Authorization header (Bearer) or, failing that, the
access_token cookie. Cookie-authenticated requests with an unsafe method
must echo the csrf_token cookie in X-CSRF-Token.
"""

import hmac
from typing import Optional, Tuple

from fastapi import Request, status

from haven_auth.api.error import ClientError
from haven_auth.app.services.token_service import TokenService
from haven_auth.domain.claims import AccessClaims
from haven_auth.domain.errors import TokenError
from haven_auth.libs.result import Error

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"
CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def client_ip(request: Request) -> Optional[str]:
    # Socket peer only; X-Forwarded-For is client-controlled
    return request.client.host if request.client else None


def extract_token(request: Request) -> Tuple[Optional[str], bool]:
    """Returns (token, came_from_cookie)."""
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip(), False
    cookie = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie:
        return cookie, True
    return None, False


def verify_csrf(request: Request) -> None:
    if request.method in SAFE_METHODS:
        return
    cookie = request.cookies.get(CSRF_COOKIE)
    header = request.headers.get(CSRF_HEADER)
    if not cookie or not header or not hmac.compare_digest(cookie, header):
        raise ClientError(
            Error("CSRF_TOKEN_INVALID", "Missing or mismatched CSRF token"),
            status_code=status.HTTP_403_FORBIDDEN,
        )


def unauthorized() -> ClientError:
    return ClientError(
        Error("UNAUTHORIZED", "Authentication required"),
        status_code=status.HTTP_401_UNAUTHORIZED,
    )


def read_claims(
    request: Request, token_service: TokenService, required: bool = True
) -> Optional[AccessClaims]:
    """
    Verify the presented access token and attach it to request.state.

    Public routes (required=False) continue anonymously when the token is
    missing or bad; protected routes get 401 with the exact token error.
    """
    token, from_cookie = extract_token(request)
    if token is None:
        if required:
            raise unauthorized()
        return None

    try:
        claims = token_service.verify(token)
    except TokenError as exc:
        if not required:
            return None
        raise ClientError(
            Error(exc.code, str(exc)), status_code=status.HTTP_401_UNAUTHORIZED
        )

    if from_cookie:
        verify_csrf(request)

    request.state.claims = claims
    return claims
