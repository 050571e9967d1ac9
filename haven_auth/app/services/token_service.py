"""
Token Service

Issues and verifies the signed tokens carried by every request.

- access token: full tenant claim bundle, 15 minutes, JWT_SECRET
- refresh token: subject and type only, 7 days, JWT_REFRESH_SECRET
- MFA challenge: bridges the password step and the TOTP step, 5 minutes

Verification is pure: no storage access. Tenant and subscription claims in
an access token can therefore lag storage by up to the access TTL; the next
refresh re-resolves them.
"""

from datetime import UTC, datetime, timedelta
from typing import Callable, Optional
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import ValidationError

from haven_auth.domain.claims import AccessClaims, RefreshClaims, TenantContext, TokenPair
from haven_auth.domain.errors import ConfigurationError, TokenExpired, TokenInvalid

ALGORITHM = "HS256"
MIN_PRODUCTION_SECRET_LENGTH = 32

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"
MFA_CHALLENGE_TYPE = "mfa"

_DECODE_OPTIONS = {
    "require_aud": True,
    "require_iss": True,
    "require_iat": True,
    "require_exp": True,
    "require_sub": True,
    "require_jti": True,
}


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenService:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        issuer: str,
        audience: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        mfa_challenge_ttl: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = _utc_now,
    ):
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.issuer = issuer
        self.audience = audience
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.mfa_challenge_ttl = mfa_challenge_ttl
        self._clock = clock

    @classmethod
    def from_config(cls, config, clock: Optional[Callable[[], datetime]] = None):
        """
        Build the service from application config.

        Raises:
            ConfigurationError: a secret is missing, both secrets are equal,
                or a production secret is shorter than 32 characters
        """
        access_secret = getattr(config, "JWT_SECRET", None)
        refresh_secret = getattr(config, "JWT_REFRESH_SECRET", None)

        if not access_secret or not refresh_secret:
            raise ConfigurationError("JWT_SECRET and JWT_REFRESH_SECRET must be set")
        if access_secret == refresh_secret:
            raise ConfigurationError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        if getattr(config, "ENVIRONMENT", "development") == "production" and (
            min(len(access_secret), len(refresh_secret)) < MIN_PRODUCTION_SECRET_LENGTH
        ):
            raise ConfigurationError(
                f"Signing secrets must be at least {MIN_PRODUCTION_SECRET_LENGTH} "
                "characters in production"
            )

        return cls(
            access_secret=access_secret,
            refresh_secret=refresh_secret,
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
            access_ttl=timedelta(minutes=config.ACCESS_TOKEN_TTL_MINUTES),
            refresh_ttl=timedelta(days=config.REFRESH_TOKEN_TTL_DAYS),
            mfa_challenge_ttl=timedelta(minutes=config.MFA_CHALLENGE_TTL_MINUTES),
            clock=clock or _utc_now,
        )

    def _registered_claims(self, subject: str, token_type: str, ttl: timedelta) -> dict:
        issued_at = int(self._clock().timestamp())
        return {
            "sub": subject,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
            "jti": str(uuid4()),
            "type": token_type,
        }

    def _decode(self, token: str, secret: str, expected_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                options=_DECODE_OPTIONS,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token has expired") from exc
        except JWTError as exc:
            raise TokenInvalid("Token is invalid") from exc

        if payload.get("type") != expected_type:
            raise TokenInvalid("Token type mismatch")
        return payload

    def issue(self, context: TenantContext, mfa_verified: bool = False) -> TokenPair:
        access_payload = {
            **context.to_claims(),
            **self._registered_claims(context.user_id, ACCESS_TOKEN_TYPE, self.access_ttl),
            "mfaVerified": mfa_verified,
        }
        refresh_payload = self._registered_claims(
            context.user_id, REFRESH_TOKEN_TYPE, self.refresh_ttl
        )
        return TokenPair(
            access_token=jwt.encode(access_payload, self._access_secret, algorithm=ALGORITHM),
            refresh_token=jwt.encode(
                refresh_payload, self._refresh_secret, algorithm=ALGORITHM
            ),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def verify(self, access_token: str) -> AccessClaims:
        """
        Raises:
            TokenExpired: past expiry
            TokenInvalid: bad signature, issuer, audience, type or shape
        """
        payload = self._decode(access_token, self._access_secret, ACCESS_TOKEN_TYPE)
        try:
            return AccessClaims.model_validate(payload)
        except ValidationError as exc:
            raise TokenInvalid("Token claims are malformed") from exc

    def verify_refresh(self, refresh_token: str) -> RefreshClaims:
        payload = self._decode(refresh_token, self._refresh_secret, REFRESH_TOKEN_TYPE)
        try:
            return RefreshClaims.model_validate(payload)
        except ValidationError as exc:
            raise TokenInvalid("Token claims are malformed") from exc

    def issue_mfa_challenge(self, user_id: str) -> str:
        payload = self._registered_claims(
            str(user_id), MFA_CHALLENGE_TYPE, self.mfa_challenge_ttl
        )
        return jwt.encode(payload, self._access_secret, algorithm=ALGORITHM)

    def verify_mfa_challenge(self, challenge_token: str) -> str:
        """Returns the user id the challenge was issued for."""
        return self._decode(challenge_token, self._access_secret, MFA_CHALLENGE_TYPE)["sub"]
