from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from haven_auth.domain.entities import Membership


class IMembershipRepository(ABC):
    """Membership repository interface - application layer"""

    @abstractmethod
    async def get_by_user_and_organization(
        self, user_id: UUID, organization_id: UUID
    ) -> Optional[Membership]:
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: UUID) -> List[Membership]:
        pass

    @abstractmethod
    async def create(self, membership: Membership) -> Membership:
        pass

    @abstractmethod
    async def update(self, membership: Membership) -> Membership:
        pass

    @abstractmethod
    async def count_active(self) -> int:
        pass
