"""
Login Use Case

Password authentication with per-account lockout.
"""

from datetime import datetime
from typing import Callable, Optional, Union

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.services.tenant_context_resolver import TenantContextResolver
from haven_auth.app.services.token_service import TokenService
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import AuditOutcome, RiskLevel
from haven_auth.libs.result import Error, Result, Return
from ._common import invalid_credentials, verify_password
from .dtos import AuthTokensResponse, MfaChallengeResponse


class LoginUseCase:
    """
    Use case for password login.

    Business Rules:
    - Unknown user, wrong password and SSO-only account fail identically
    - Each attempt is claimed atomically before the hash comparison; the
      attempt that reaches the threshold inside the window locks the account
    - A correct password settles its claim unless a concurrent failure
      locked the account first
    - A locked account is rejected even with the correct password
    - MFA-enabled accounts get a challenge token instead of tokens
    - Success clears the lockout record and stamps last_login_at
    - Failure counters and audit events are committed before returning
    """

    def __init__(
        self,
        uow: UnitOfWork,
        token_service: TokenService,
        lockout_policy: LockoutPolicy,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.uow = uow
        self.token_service = token_service
        self.lockout_policy = lockout_policy
        self._clock = clock

    async def execute(
        self, email: str, password: str, client_ip: Optional[str] = None
    ) -> Result[Union[AuthTokensResponse, MfaChallengeResponse]]:
        now = self._clock()
        email = email.strip().lower()

        async with self.uow:
            ledger = AuditLedger(self.uow)
            user = await self.uow.users.get_by_email(email)

            if user is None or not user.password_hash:
                await verify_password(password, None)
                await ledger.record(
                    "login_failed",
                    user_id=user.id if user else None,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"email": email, "client_ip": client_ip},
                )
                await self.uow.commit()
                return Return.err(invalid_credentials())

            attempt = await self.lockout_policy.claim_attempt(self.uow, user, now)
            if attempt is None:
                return await self._locked(ledger, user, email, client_ip, now)
            # Visible to concurrent attempts before the slow hash comparison
            await self.uow.commit()

            if not await verify_password(password, user.password_hash):
                locked = self.lockout_policy.locks_account(attempt)
                await ledger.record(
                    "login_failed",
                    user_id=user.id,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.high if locked else RiskLevel.medium,
                    metadata={
                        "email": email,
                        "client_ip": client_ip,
                        "failed_attempts": attempt,
                    },
                )
                if locked:
                    await ledger.record(
                        "account_locked",
                        user_id=user.id,
                        outcome=AuditOutcome.failure,
                        risk_level=RiskLevel.high,
                        metadata={
                            "email": email,
                            "lockout_minutes": int(
                                self.lockout_policy.lockout_duration.total_seconds() // 60
                            ),
                        },
                    )
                await self.uow.commit()
                return Return.err(invalid_credentials())

            if not await self.lockout_policy.settle_attempt(self.uow, user, attempt, now):
                return await self._locked(ledger, user, email, client_ip, now)

            if not user.is_active:
                await ledger.record(
                    "login_failed",
                    user_id=user.id,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"email": email, "reason": "user_disabled"},
                )
                await self.uow.commit()
                return Return.err(Error("USER_DISABLED", "User account is disabled"))

            if user.mfa_enabled:
                await ledger.record(
                    "login_mfa_challenge",
                    user_id=user.id,
                    metadata={"client_ip": client_ip},
                )
                await self.uow.commit()
                return Return.ok(
                    MfaChallengeResponse(
                        mfa_token=self.token_service.issue_mfa_challenge(str(user.id)),
                        expires_in=int(self.token_service.mfa_challenge_ttl.total_seconds()),
                    )
                )

            resolution = await TenantContextResolver(self.uow, self._clock).resolve(user.id)
            if resolution.is_err():
                await ledger.record(
                    "login_failed",
                    user_id=user.id,
                    outcome=AuditOutcome.failure,
                    risk_level=RiskLevel.medium,
                    metadata={"email": email, "reason": resolution.error.code},
                )
                await self.uow.commit()
                return Return.err(resolution.error)
            context = resolution.value

            await self.lockout_policy.clear(self.uow, user, now)
            await ledger.record(
                "login",
                user_id=user.id,
                organization_id=context.primary_organization_id,
                metadata={"email": email, "client_ip": client_ip, "mfa": False},
            )
            await self.uow.commit()

            tokens = self.token_service.issue(context, mfa_verified=False)
            return Return.ok(AuthTokensResponse.from_tokens(tokens, context))

    async def _locked(
        self, ledger: AuditLedger, user, email: str, client_ip: Optional[str], now: datetime
    ):
        retry_after = await self.lockout_policy.current_retry_after(self.uow, user, now)
        await ledger.record(
            "login_blocked_locked",
            user_id=user.id,
            outcome=AuditOutcome.failure,
            risk_level=RiskLevel.high,
            metadata={"email": email, "client_ip": client_ip},
        )
        await self.uow.commit()
        return Return.err(
            Error(
                "ACCOUNT_LOCKED",
                "Account is temporarily locked after repeated failed logins",
                retryAfter=retry_after,
            )
        )
