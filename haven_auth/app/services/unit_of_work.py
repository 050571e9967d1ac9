from abc import ABC, abstractmethod

from haven_auth.app.repositories.audit_event_repository import IAuditEventRepository
from haven_auth.app.repositories.membership_repository import IMembershipRepository
from haven_auth.app.repositories.organization_repository import IOrganizationRepository
from haven_auth.app.repositories.password_reset_token_repository import (
    IPasswordResetTokenRepository,
)
from haven_auth.app.repositories.rate_limit_repository import IRateLimitRepository
from haven_auth.app.repositories.user_repository import IUserRepository


class UnitOfWork(ABC):
    """Abstract UnitOfWork - defines repository access and transaction management"""

    # Repository properties (initialized in __aenter__)
    users: IUserRepository
    organizations: IOrganizationRepository
    memberships: IMembershipRepository
    audit_events: IAuditEventRepository
    password_reset_tokens: IPasswordResetTokenRepository
    rate_limits: IRateLimitRepository

    @abstractmethod
    async def __aenter__(self):
        pass

    @abstractmethod
    async def __aexit__(self, *args):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
