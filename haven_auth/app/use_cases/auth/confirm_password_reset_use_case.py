"""
Confirm Password Reset Use Case

Sets a new password from a valid reset token and clears the lockout record.
"""

from datetime import datetime
from typing import Callable

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import RiskLevel
from haven_auth.libs.result import Error, Result, Return
from ._common import hash_password_async
from .dtos import StatusResponse
from .request_password_reset_use_case import hash_reset_token

MIN_PASSWORD_LENGTH = 8


class ConfirmPasswordResetUseCase:
    """
    Business Rules:
    - Token is looked up by its SHA-256 hash
    - Token must be unexpired and unused; it is consumed with a conditional update
    - New password needs at least 8 characters
    - Lockout counters are reset with the password
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(self, token: str, new_password: str) -> Result[StatusResponse]:
        if len(new_password) < MIN_PASSWORD_LENGTH:
            return Return.err(
                Error(
                    "INVALID_PASSWORD",
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                )
            )

        async with self.uow:
            reset_token = await self.uow.password_reset_tokens.get_by_token_hash(
                hash_reset_token(token)
            )
            if reset_token is None:
                return Return.err(Error("INVALID_TOKEN", "Invalid or expired password reset token"))
            if reset_token.expires_at < self._clock():
                return Return.err(Error("TOKEN_EXPIRED", "Password reset token has expired"))
            if reset_token.used:
                return Return.err(
                    Error("TOKEN_ALREADY_USED", "Password reset token has already been used")
                )

            user = await self.uow.users.get_by_id(reset_token.user_id)
            if user is None:
                return Return.err(Error("INVALID_TOKEN", "Invalid or expired password reset token"))

            password_hash = await hash_password_async(new_password)

            # Conditional update: of two concurrent confirms only one consumes the token
            if not await self.uow.password_reset_tokens.mark_used(reset_token.id):
                return Return.err(
                    Error("TOKEN_ALREADY_USED", "Password reset token has already been used")
                )

            user.password_hash = password_hash
            user.failed_login_attempts = 0
            user.last_failed_login_at = None
            user.locked_until = None
            await self.uow.users.update(user)

            await AuditLedger(self.uow).record(
                "password_reset_confirmed",
                user_id=user.id,
                risk_level=RiskLevel.medium,
                metadata={"token_id": str(reset_token.id)},
            )
            await self.uow.commit()

            return Return.ok(
                StatusResponse(status="success", message="Password has been reset successfully")
            )
