"""
Admin API Key Authentication

Service-to-service authentication for the billing collaborator.
"""

import hmac

from fastapi import Header, Request, status

from haven_auth.api.error import ClientError
from haven_auth.libs.result import Error


async def verify_admin_api_key(request: Request, x_admin_api_key: str = Header(None)):
    """
    Verify the X-Admin-API-Key header.

    With no ADMIN_API_KEY configured every call is rejected.

    Raises:
        ClientError: 401 if the key is missing, unconfigured or wrong
    """
    if not x_admin_api_key:
        raise ClientError(
            Error("UNAUTHORIZED", "Admin API key required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    valid_admin_key = getattr(request.app.state.config, "ADMIN_API_KEY", None)
    if not valid_admin_key or not hmac.compare_digest(
        x_admin_api_key.encode("utf-8"), valid_admin_key.encode("utf-8")
    ):
        raise ClientError(
            Error("INVALID_API_KEY", "Invalid admin API key"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    return True
