"""
Browser session cookies.

access_token and refresh_token are HttpOnly; csrf_token is readable by
the page so it can be echoed in X-CSRF-Token (double-submit).
"""

import secrets

from fastapi import Response

from haven_auth.domain.claims import TokenPair
from .request_context import ACCESS_TOKEN_COOKIE, CSRF_COOKIE, REFRESH_TOKEN_COOKIE

REFRESH_COOKIE_PATH = "/auth"


def set_auth_cookies(response: Response, tokens: TokenPair, refresh_max_age: int, secure: bool):
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    response.set_cookie(
        REFRESH_TOKEN_COOKIE,
        tokens.refresh_token,
        max_age=refresh_max_age,
        httponly=True,
        secure=secure,
        samesite="strict",
        path=REFRESH_COOKIE_PATH,
    )
    response.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        max_age=refresh_max_age,
        httponly=False,
        secure=secure,
        samesite="strict",
    )


def clear_auth_cookies(response: Response):
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE, path=REFRESH_COOKIE_PATH)
    response.delete_cookie(CSRF_COOKIE)
