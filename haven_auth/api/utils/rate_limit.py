"""
Per-client throttling for credential endpoints.

Counted in the shared store so limits hold across API processes.
"""

from datetime import timedelta

from fastapi import Depends, Request, status

from haven_auth.api.error import ClientError
from haven_auth.app.services.audit_ledger import AuditLedger
from haven_auth.app.services.rate_limiter import RateLimiter
from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.depends import get_unit_of_work
from haven_auth.domain.entities import AuditOutcome, RiskLevel
from haven_auth.libs.result import Error
from .request_context import client_ip


def rate_limit(scope: str):
    """Dependency factory: AUTH_RATE_LIMIT_ATTEMPTS per client per window."""

    async def dependency(request: Request, uow: UnitOfWork = Depends(get_unit_of_work)):
        config = request.app.state.config
        client = client_ip(request) or "unknown"

        async with uow:
            decision = await RateLimiter(uow).hit(
                scope,
                client,
                config.AUTH_RATE_LIMIT_ATTEMPTS,
                timedelta(minutes=config.AUTH_RATE_LIMIT_WINDOW_MINUTES),
            )
            await uow.commit()

            if decision.allowed:
                return decision

            await AuditLedger(uow).record_best_effort(
                "rate_limited",
                resource=scope,
                outcome=AuditOutcome.failure,
                risk_level=RiskLevel.medium,
                metadata={"client_ip": client, "count": decision.count},
            )

        raise ClientError(
            Error(
                "RATE_LIMITED",
                "Too many attempts, please try again later",
                retryAfter=decision.retry_after,
            ),
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(decision.retry_after)},
        )

    return dependency
