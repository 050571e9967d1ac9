"""
Verify MFA Use Case

Second login step: trades an MFA challenge token plus a TOTP code for
tokens. Failures have their own rate-limit bucket and never touch the
password lockout record.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import UUID

from haven_auth.app.services import mfa
from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.services.rate_limiter import RateLimiter
from haven_auth.app.services.tenant_context_resolver import TenantContextResolver
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import AuditOutcome, RiskLevel
from haven_auth.domain.errors import TokenError
from haven_auth.libs.result import Error, Result, Return
from .dtos import AuthTokensResponse

MFA_RATE_LIMIT_SCOPE = "mfa"


class VerifyMfaUseCase:
    """
    Business Rules:
    - Challenge token must be valid, unexpired and of type mfa
    - Code is checked with +/- one 30s step tolerance
    - Each attempt takes a slot in the per-user window before the code is
      compared; a correct code gives its slot back, so at most max_attempts
      wrong codes are ever compared per window
    - Failures are audit-logged at medium risk
    - Success issues tokens with mfaVerified=true
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: TokenService,
        lockout_policy: LockoutPolicy,
        max_attempts: int = 5,
        window: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.token_service = token_service
        self.lockout_policy = lockout_policy
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock

    async def execute(
        self, mfa_token: str, code: str, client_ip: Optional[str] = None
    ) -> Result[AuthTokensResponse]:
        try:
            user_id = self.token_service.verify_mfa_challenge(mfa_token)
        except TokenError as exc:
            return Return.err(Error(exc.code, "MFA challenge is invalid or has expired"))

        async with self.uow:
            ledger = AuditLedger(self.uow)
            limiter = RateLimiter(self.uow, self._clock)

            # Counted before the code is compared; committed so parallel
            # requests see each other's hits
            throttle = await limiter.hit(
                MFA_RATE_LIMIT_SCOPE, user_id, self.max_attempts, self.window
            )
            await self.uow.commit()
            if not throttle.allowed:
                await ledger.record(
                    "mfa_rate_limited",
                    user_id=user_id,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"client_ip": client_ip, "count": throttle.count},
                )
                await self.uow.commit()
                return Return.err(
                    Error(
                        "RATE_LIMITED",
                        "Too many verification attempts, try again later",
                        retryAfter=throttle.retry_after,
                    )
                )

            user = await self.uow.users.get_by_id(UUID(user_id))
            if user is None or not user.is_active or not user.mfa_enabled:
                return Return.err(Error("TOKEN_INVALID", "MFA challenge is invalid or has expired"))

            if not mfa.verify_code(user.mfa_secret, code):
                await ledger.record(
                    "mfa_failed",
                    user_id=user.id,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"client_ip": client_ip},
                )
                await self.uow.commit()
                return Return.err(Error("INVALID_MFA_CODE", "Invalid verification code"))

            # Only failed codes stay counted
            await limiter.release(MFA_RATE_LIMIT_SCOPE, user_id, self.window)

            resolution = await TenantContextResolver(self.uow, self._clock).resolve(user.id)
            if resolution.is_err():
                return Return.err(resolution.error)
            context = resolution.value

            await self.lockout_policy.clear(self.uow, user, self._clock())
            await ledger.record(
                "login",
                user_id=user.id,
                organization_id=context.primary_organization_id,
                metadata={"email": user.email, "client_ip": client_ip, "mfa": True},
            )
            await self.uow.commit()

            tokens = self.token_service.issue(context, mfa_verified=True)
            return Return.ok(AuthTokensResponse.from_tokens(tokens, context))
