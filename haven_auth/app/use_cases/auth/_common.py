import asyncio
from typing import Optional

import bcrypt

from haven_auth.libs.result import Error

BCRYPT_COST = 12

# Compared against when the account is unknown so both paths pay for one hash
DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"haven-dummy-password", bcrypt.gensalt(BCRYPT_COST))


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(BCRYPT_COST)).decode("utf-8")


def check_password(password: str, password_hash: Optional[str]) -> bool:
    """Constant work either way: a missing hash is compared against the dummy."""
    if not password_hash:
        bcrypt.checkpw(password.encode("utf-8"), DUMMY_PASSWORD_HASH)
        return False
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


async def hash_password_async(password: str) -> str:
    # bcrypt holds the CPU for ~250ms at cost 12; keep it off the event loop
    return await asyncio.to_thread(hash_password, password)


async def verify_password(password: str, password_hash: Optional[str]) -> bool:
    return await asyncio.to_thread(check_password, password, password_hash)


def invalid_credentials() -> Error:
    # One message for unknown user, wrong password and SSO-only accounts
    return Error("INVALID_CREDENTIALS", "Invalid email or password")
