"""
Request Password Reset Use Case

Creates a single-use reset token. Delivery is handled by the e-mail
collaborator; this service only stores the hash.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional, Tuple

from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import PasswordResetToken, User
from haven_auth.libs.result import Result, Return
from .dtos import StatusResponse

RESET_TOKEN_TTL = timedelta(hours=1)

_SENT = StatusResponse(
    status="sent",
    message="If the email exists, a password reset link has been sent",
)


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


async def create_reset_token(
    uow: UnitOfWork, user: User, now: datetime
) -> Tuple[str, PasswordResetToken]:
    """Returns the plain token (for delivery) and its stored record."""
    reset_token = secrets.token_urlsafe(32)
    record = await uow.password_reset_tokens.create(
        PasswordResetToken(
            user_id=user.id,
            token_hash=hash_reset_token(reset_token),
            used=False,
            expires_at=now + RESET_TOKEN_TTL,
        )
    )
    return reset_token, record


class RequestPasswordResetUseCase:
    """
    Business Rules:
    - Same response whether or not the email exists
    - Token is 32 random bytes, stored as its SHA-256 hash, valid 1 hour
    - SSO-only accounts get no token
    - Per-client rate limiting is applied by the route
    """

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = utcnow):
        self.uow = uow
        self._clock = clock

    async def execute(self, email: str, client_ip: Optional[str] = None) -> Result[StatusResponse]:
        email = email.strip().lower()
        async with self.uow:
            user = await self.uow.users.get_by_email(email)
            if user is None or not user.is_active or (
                user.password_hash is None and user.external_subject
            ):
                return Return.ok(_SENT)

            _, record = await create_reset_token(self.uow, user, self._clock())
            await AuditLedger(self.uow).record(
                "password_reset_requested",
                user_id=user.id,
                metadata={"token_id": str(record.id), "client_ip": client_ip},
            )
            await self.uow.commit()

            return Return.ok(_SENT)
