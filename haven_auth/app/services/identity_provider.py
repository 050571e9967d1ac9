"""
Identity provider port.

Adapters (OAuth/OIDC over HTTP, SAML assertion consumers, LDAP binds)
turn a presented credential into an ExternalIdentity. Wire formats stay in
the adapters; the gateway only sees the verified claims.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from haven_auth.domain.entities import AuthMethod

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """The provider rejected the credential or could not be reached."""


class ExternalIdentity(BaseModel):
    provider: str
    auth_method: AuthMethod
    subject: str
    email: str
    role_claim: Optional[str] = None
    groups: List[str] = Field(default_factory=list)


class IIdentityProvider(ABC):
    name: str
    auth_method: AuthMethod
    # Organization whose membership this provider manages, if any
    organization_id: Optional[str] = None

    @abstractmethod
    async def authenticate(self, credential: Dict[str, Any]) -> ExternalIdentity:
        """
        Raises:
            IdentityProviderError: credential rejected or provider unavailable
        """
        pass


async def authenticate_with_timeout(
    provider: IIdentityProvider, credential: Dict[str, Any], timeout_seconds: float
) -> Optional[ExternalIdentity]:
    """None on rejection, provider failure or timeout."""
    try:
        return await asyncio.wait_for(provider.authenticate(credential), timeout_seconds)
    except asyncio.TimeoutError:
        logger.warning("Identity provider %s timed out after %ss", provider.name, timeout_seconds)
        return None
    except IdentityProviderError as exc:
        logger.warning("Identity provider %s rejected credential: %s", provider.name, exc)
        return None
