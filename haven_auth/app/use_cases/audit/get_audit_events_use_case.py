"""
Get Audit Events Use Case

Retrieves an organization's audit trail with cursor pagination.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel

from haven_auth.app.services.unit_of_work import UnitOfWork
from haven_auth.domain.entities import RiskLevel
from haven_auth.libs.result import Error, Result, Return


class AuditEventResponse(BaseModel):
    id: str
    action: str
    actor: str
    user_id: Optional[str]
    resource: Optional[str]
    outcome: str
    risk_level: str
    metadata: Dict[str, Any]
    timestamp: str


class AuditEventsResponse(BaseModel):
    events: List[AuditEventResponse]
    next_cursor: Optional[str]


class GetAuditEventsUseCase:
    """
    Business Rules:
    - Results are scoped to one organization; the caller's membership and
      audit:read permission are enforced by the route guard
    - Newest first, cursor-paginated, optionally filtered by risk level
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self,
        organization_id: UUID,
        limit: int = 50,
        cursor: Optional[str] = None,
        risk_level: Optional[str] = None,
    ) -> Result[AuditEventsResponse]:
        if risk_level is not None:
            try:
                risk_level = RiskLevel(risk_level).value
            except ValueError:
                return Return.err(
                    Error("INVALID_RISK_LEVEL", f"Unknown risk level: {risk_level}")
                )

        async with self.uow:
            events, next_cursor = await self.uow.audit_events.get_by_organization_paginated(
                organization_id, limit=limit, cursor=cursor, risk_level=risk_level
            )

            return Return.ok(
                AuditEventsResponse(
                    events=[
                        AuditEventResponse(
                            id=str(event.id),
                            action=event.action,
                            actor=event.actor,
                            user_id=str(event.user_id) if event.user_id else None,
                            resource=event.resource,
                            outcome=getattr(event.outcome, "value", event.outcome),
                            risk_level=getattr(event.risk_level, "value", event.risk_level),
                            metadata=event.event_metadata or {},
                            timestamp=event.created_at.isoformat() + "Z",
                        )
                        for event in events
                    ],
                    next_cursor=next_cursor,
                )
            )
