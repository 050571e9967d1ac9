"""
OAuth 2.0 / OIDC identity provider.

Exchanges an authorization code for an access token, then reads the
userinfo endpoint. Both calls share one bounded httpx timeout.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from haven_auth.app.services.identity_provider import (
    ExternalIdentity,
    IdentityProviderError,
    IIdentityProvider,
)
from haven_auth.domain.entities import AuthMethod

logger = logging.getLogger(__name__)


class OAuthIdentityProvider(IIdentityProvider):
    auth_method = AuthMethod.oauth

    def __init__(
        self,
        name: str,
        client_id: str,
        client_secret: str,
        token_url: str,
        userinfo_url: str,
        redirect_uri: Optional[str] = None,
        organization_id: Optional[str] = None,
        role_claim: str = "role",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.name = name
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.userinfo_url = userinfo_url
        self.redirect_uri = redirect_uri
        self.organization_id = organization_id
        self.role_claim = role_claim
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, name: str, settings: Dict[str, Any], timeout: float):
        """
        settings comes from OAUTH_PROVIDERS[name] in env.yaml:

            OAUTH_PROVIDERS:
              google:
                client_id: ...
                client_secret: ...
                token_url: https://oauth2.googleapis.com/token
                userinfo_url: https://openidconnect.googleapis.com/v1/userinfo
                redirect_uri: https://app.example.com/auth/sso/google/callback
                organization_id: <optional, binds logins to one organization>
        """
        return cls(
            name=name,
            client_id=settings["client_id"],
            client_secret=settings["client_secret"],
            token_url=settings["token_url"],
            userinfo_url=settings["userinfo_url"],
            redirect_uri=settings.get("redirect_uri"),
            organization_id=settings.get("organization_id"),
            role_claim=settings.get("role_claim", "role"),
            timeout=timeout,
        )

    async def authenticate(self, credential: Dict[str, Any]) -> ExternalIdentity:
        code = credential.get("code")
        if not code:
            raise IdentityProviderError("Missing authorization code")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                token_response = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": credential.get("redirect_uri") or self.redirect_uri,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                    },
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                provider_token = token_response.json().get("access_token")
                if not provider_token:
                    raise IdentityProviderError("Token endpoint returned no access_token")

                userinfo_response = await client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {provider_token}"},
                )
                userinfo_response.raise_for_status()
                profile = userinfo_response.json()
            except httpx.HTTPError as exc:
                raise IdentityProviderError(f"{self.name} request failed: {exc}") from exc

        subject = profile.get("sub") or profile.get("id")
        email = profile.get("email")
        if not subject or not email:
            raise IdentityProviderError("Profile is missing subject or email")
        if profile.get("email_verified") is False:
            raise IdentityProviderError("Provider email is not verified")

        return ExternalIdentity(
            provider=self.name,
            auth_method=self.auth_method,
            subject=str(subject),
            email=email.lower(),
            role_claim=profile.get(self.role_claim),
            groups=profile.get("groups") or [],
        )


def build_identity_providers(config) -> Dict[str, IIdentityProvider]:
    timeout = float(getattr(config, "IDP_TIMEOUT_SECONDS", 10))
    return {
        name: OAuthIdentityProvider.from_settings(name, settings, timeout)
        for name, settings in (getattr(config, "OAUTH_PROVIDERS", None) or {}).items()
    }
