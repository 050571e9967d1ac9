import base64
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from haven_auth.app.repositories.audit_event_repository import IAuditEventRepository
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import AuditEvent, RiskLevel

HIGH_RISK_LEVELS = (RiskLevel.high, RiskLevel.critical)


class AuditEventRepository(IAuditEventRepository):
    """AuditEvent repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        self.session.add(audit_event)
        await self.session.flush()
        await self.session.refresh(audit_event)
        return audit_event

    async def get_by_organization_paginated(
        self,
        organization_id: UUID,
        limit: int = 50,
        cursor: Optional[str] = None,
        risk_level: Optional[str] = None,
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Cursor format: base64-encoded ISO timestamp of created_at
        """
        stmt = select(AuditEvent).where(AuditEvent.organization_id == organization_id)
        if risk_level:
            stmt = stmt.where(AuditEvent.risk_level == risk_level)

        if cursor:
            try:
                cursor_timestamp = datetime.fromisoformat(
                    base64.b64decode(cursor).decode("utf-8")
                )
                stmt = stmt.where(AuditEvent.created_at < cursor_timestamp)
            except (ValueError, TypeError):
                # Unreadable cursor restarts from the newest event
                pass

        stmt = stmt.order_by(AuditEvent.created_at.desc()).limit(limit + 1)
        result = await self.session.exec(stmt)
        events = list(result.all())

        next_cursor = None
        if len(events) > limit:
            events = events[:limit]
            next_cursor = base64.b64encode(
                events[-1].created_at.isoformat().encode("utf-8")
            ).decode("utf-8")

        return events, next_cursor

    async def count_recent_high_risk(self, hours: int = 24) -> int:
        stmt = (
            select(func.count())
            .select_from(AuditEvent)
            .where(
                AuditEvent.risk_level.in_(HIGH_RISK_LEVELS),
                AuditEvent.created_at >= utcnow() - timedelta(hours=hours),
            )
        )
        result = await self.session.exec(stmt)
        return result.one()
