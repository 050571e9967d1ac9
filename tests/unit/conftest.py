from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

REPOSITORIES = (
    "users",
    "organizations",
    "memberships",
    "audit_events",
    "password_reset_tokens",
    "rate_limits",
)

FIXED_NOW = datetime(2026, 3, 2, 9, 30, 0)


@pytest.fixture
def mock_uow():
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)  # Must return False to not suppress exceptions
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()

    # Every repository method is awaitable
    for name in REPOSITORIES:
        setattr(uow, name, AsyncMock())

    # Audit events come back as written
    uow.audit_events.create.side_effect = lambda event: event
    return uow


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock(now):
    return lambda: now
