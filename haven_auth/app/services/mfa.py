"""TOTP second factor (RFC 6238 via pyotp)."""

from datetime import datetime
from typing import Optional

import pyotp

MFA_ISSUER_NAME = "HavenHub"

# One 30-second step either side of the current one
VALID_WINDOW = 1


def generate_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, email: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=email, issuer_name=MFA_ISSUER_NAME)


def verify_code(secret: Optional[str], code: Optional[str], for_time: Optional[datetime] = None) -> bool:
    if not secret or not code:
        return False
    code = code.strip()
    if not code.isdigit():
        return False
    return pyotp.TOTP(secret).verify(code, for_time=for_time, valid_window=VALID_WINDOW)
