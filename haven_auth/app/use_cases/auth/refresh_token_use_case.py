"""
Refresh Token Use Case

Trades a refresh token for a new pair. Tenant claims are re-resolved from
storage, never copied from the old tokens.
"""

from datetime import datetime
from typing import Callable

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.tenant_context_resolver import TenantContextResolver
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import AuditOutcome, RiskLevel
from haven_auth.domain.errors import TokenExpired, TokenInvalid
from haven_auth.libs.result import Error, Result, Return
from .dtos import AuthTokensResponse


class RefreshTokenUseCase:
    """
    Business Rules:
    - Token must verify against the refresh secret with type=refresh
    - A user with no active membership gets TENANT_RESOLUTION_FAILED and
      no token at all
    - New access tokens start with mfaVerified=false; the refresh token
      carries no second-factor state
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: TokenService,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.token_service = token_service
        self._clock = clock

    async def execute(self, refresh_token: str) -> Result[AuthTokensResponse]:
        try:
            claims = self.token_service.verify_refresh(refresh_token)
        except TokenExpired:
            return Return.err(Error("TOKEN_EXPIRED", "Refresh token has expired"))
        except TokenInvalid:
            return Return.err(Error("TOKEN_INVALID", "Refresh token is invalid"))

        async with self.uow:
            ledger = AuditLedger(self.uow)
            resolution = await TenantContextResolver(self.uow, self._clock).resolve(claims.sub)
            if resolution.is_err():
                await ledger.record(
                    "token_refresh_failed",
                    user_id=claims.sub,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"reason": resolution.error.code, "jti": claims.jti},
                )
                await self.uow.commit()
                return Return.err(resolution.error)

            context = resolution.value
            await ledger.record(
                "token_refresh",
                user_id=context.user_id,
                organization_id=context.primary_organization_id,
                metadata={"jti": claims.jti},
            )
            await self.uow.commit()

        tokens = self.token_service.issue(context, mfa_verified=False)
        return Return.ok(AuthTokensResponse.from_tokens(tokens, context))
