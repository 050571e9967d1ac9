"""
Platform-Operator Gate

Cross-tenant routes sit behind three independent checks, in order:

1. role: platform_admin in the token and on the live identity record
2. MFA: enabled on the account and verified in this session
3. source IP inside PLATFORM_ADMIN_IP_ALLOWLIST

Each failure is a 403 audit-logged at high risk. Nothing downstream runs
until all three pass.
"""

import ipaddress
import logging
from typing import Iterable, Optional
from uuid import UUID

from fastapi import Depends, Request, status

from haven_auth.api.error import ClientError
from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.depends import get_token_service, get_unit_of_work
from haven_auth.domain.claims import AccessClaims
from haven_auth.domain.entities import PLATFORM_ADMIN_ROLE, AuditOutcome, RiskLevel
from haven_auth.libs.result import Error
from .request_context import client_ip, read_claims

logger = logging.getLogger(__name__)


def ip_allowed(address: Optional[str], allowlist: Iterable[str]) -> bool:
    """An empty allowlist or an unparseable address denies."""
    if not address:
        return False
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    for entry in allowlist or ():
        try:
            if ip in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            logger.warning(f"Ignoring malformed allowlist entry: {entry}")
    return False


async def require_platform_admin(
    request: Request,
    uow: UnitOfWork = Depends(get_unit_of_work),
    token_service: TokenService = Depends(get_token_service),
) -> AccessClaims:
    claims = read_claims(request, token_service, required=True)
    address = client_ip(request)

    async def deny(code: str, message: str, check: str):
        async with uow:
            await AuditLedger(uow).record_best_effort(
                "platform_admin_access_denied",
                user_id=claims.user_id,
                resource=f"{request.method} {request.url.path}",
                outcome=AuditOutcome.failure,
                risk_level=RiskLevel.high,
                metadata={"check": check, "client_ip": address},
            )
        raise ClientError(Error(code, message), status_code=status.HTTP_403_FORBIDDEN)

    async with uow:
        user = await uow.users.get_by_id(UUID(claims.user_id))

    if (
        not claims.is_platform_admin
        or user is None
        or not user.is_active
        or user.role != PLATFORM_ADMIN_ROLE
    ):
        await deny("PLATFORM_ADMIN_REQUIRED", "Platform admin access required", "role")

    if not (user.mfa_enabled and claims.mfa_verified):
        await deny(
            "MFA_REQUIRED",
            "Multi-factor authentication required for platform admin access",
            "mfa",
        )

    if not ip_allowed(address, request.app.state.config.PLATFORM_ADMIN_IP_ALLOWLIST):
        await deny("IP_NOT_ALLOWED", "Access from this IP address is not allowed", "ip")

    return claims
