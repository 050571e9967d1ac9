"""
Audit Ledger

Append-only writer for security-relevant events. Two write modes:

- record(): part of the caller's transaction; failures propagate
- record_best_effort(): commits on its own and never fails the request;
  a failed write is logged at ERROR for operational monitoring
"""

import logging
from typing import Any, Dict, Optional, Union
from uuid import UUID

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.entities import AuditEvent, AuditOutcome, RiskLevel

logger = logging.getLogger(__name__)


def _as_uuid(value: Optional[Union[UUID, str]]) -> Optional[UUID]:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class AuditLedger:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def record(
        self,
        action: str,
        *,
        user_id: Optional[Union[UUID, str]] = None,
        organization_id: Optional[Union[UUID, str]] = None,
        resource: Optional[str] = None,
        outcome: AuditOutcome = AuditOutcome.success,
        risk_level: RiskLevel = RiskLevel.low,
        metadata: Optional[Dict[str, Any]] = None,
        actor: Optional[str] = None,
    ) -> AuditEvent:
        user_uuid = _as_uuid(user_id)
        event = AuditEvent(
            user_id=user_uuid,
            actor=actor or (str(user_uuid) if user_uuid else "system"),
            organization_id=_as_uuid(organization_id),
            action=action,
            resource=resource,
            outcome=outcome,
            risk_level=risk_level,
            event_metadata=metadata or {},
        )
        return await self.uow.audit_events.create(event)

    async def record_best_effort(self, action: str, **kwargs: Any) -> bool:
        try:
            await self.record(action, **kwargs)
            await self.uow.commit()
            return True
        except Exception:
            logger.exception("Audit sink write failed for action=%s", action)
            await self.uow.rollback()
            return False
