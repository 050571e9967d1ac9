from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from uuid import UUID

from haven_auth.domain.entities import Organization, ResourceKind


class IOrganizationRepository(ABC):
    """Organization repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, organization_id: UUID) -> Optional[Organization]:
        pass

    @abstractmethod
    async def get_many(self, organization_ids: List[UUID]) -> List[Organization]:
        pass

    @abstractmethod
    async def create(self, organization: Organization) -> Organization:
        pass

    @abstractmethod
    async def update(self, organization: Organization) -> Organization:
        pass

    @abstractmethod
    async def reserve_usage(self, organization_id: UUID, kind: ResourceKind) -> bool:
        """
        Atomically take one usage slot.

        Returns False when the organization is at its ceiling (or missing);
        the counter is never read into application memory first.
        """
        pass

    @abstractmethod
    async def release_usage(self, organization_id: UUID, kind: ResourceKind) -> bool:
        """Atomically give one slot back; never drops below zero"""
        pass

    @abstractmethod
    async def count_by_subscription_status(self) -> Dict[str, int]:
        pass

    @abstractmethod
    async def count_by_tier(self) -> Dict[str, int]:
        pass

    @abstractmethod
    async def usage_totals(self) -> Dict[str, int]:
        """Summed resident and property counters across all organizations"""
        pass
