from abc import ABC, abstractmethod
from typing import List, Optional, Tuple
from uuid import UUID

from haven_auth.domain.entities import AuditEvent


class IAuditEventRepository(ABC):
    """AuditEvent repository interface - append-only"""

    @abstractmethod
    async def create(self, audit_event: AuditEvent) -> AuditEvent:
        """Create a new audit event (immutable)"""
        pass

    @abstractmethod
    async def get_by_organization_paginated(
        self,
        organization_id: UUID,
        limit: int = 50,
        cursor: Optional[str] = None,
        risk_level: Optional[str] = None,
    ) -> Tuple[List[AuditEvent], Optional[str]]:
        """
        Get audit events for an organization with cursor-based pagination.

        Returns:
            Tuple of (events list, next_cursor)
            - events: List of audit events ordered by created_at DESC
            - next_cursor: Cursor for next page, None if no more events
        """
        pass

    @abstractmethod
    async def count_recent_high_risk(self, hours: int = 24) -> int:
        pass
