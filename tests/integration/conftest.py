from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from haven_auth.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from haven_auth.app.use_cases.auth._common import hash_password
from haven_auth.depends import get_unit_of_work
from haven_auth.domain.base import utcnow
from haven_auth.domain.entities import (
    AuditEvent,
    Membership,
    MembershipRole,
    MembershipStatus,
    Organization,
    SubscriptionStatus,
    SubscriptionTier,
    User,
)
from haven_auth.domain.plans import PLAN_CATALOG
from tests.integration.helpers import PASSWORD

ADMIN_API_KEY = "integration-admin-key-0123456789abcdef"


class TestConfig(ApplicationConfig):
    __test__ = False

    ENVIRONMENT = "test"
    JWT_SECRET = "integration-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "integration-refresh-secret-0123456789abcdef"
    ADMIN_API_KEY = ADMIN_API_KEY
    COOKIE_SECURE = False
    ENABLE_LOGGING_MIDDLEWARE = True
    PLATFORM_ADMIN_IP_ALLOWLIST = ["127.0.0.1/32"]
    OAUTH_PROVIDERS = {}
    AUTH_RATE_LIMIT_ATTEMPTS = 5
    LOCKOUT_MAX_ATTEMPTS = 5


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def app(session_factory):
    from haven_auth.api.app import create_app

    app = create_app(TestConfig)

    # One session per request, shared by the guards and the route
    async def override_get_unit_of_work():
        async with session_factory() as session:
            yield SqlAlchemyUnitOfWork(session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    return app


@pytest_asyncio.fixture
async def make_client(app):
    clients = []

    async def _make(ip: str = "127.0.0.1") -> AsyncClient:
        transport = ASGITransport(app=app, client=(ip, 123))
        client = AsyncClient(transport=transport, base_url="http://test")
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture
async def client(make_client):
    return await make_client()


@pytest_asyncio.fixture
async def seed(session_factory):
    """Write entities straight to storage, bypassing the API."""

    async def _seed(*entities):
        async with session_factory() as session:
            session.add_all(entities)
            await session.commit()
        return entities

    return _seed


@pytest_asyncio.fixture
async def fetch(session_factory):
    async def _fetch(statement):
        async with session_factory() as session:
            return (await session.exec(statement)).all()

    return _fetch


@pytest_asyncio.fixture
async def audit_rows(fetch):
    async def _rows(action: str = None):
        statement = select(AuditEvent)
        if action:
            statement = statement.where(AuditEvent.action == action)
        return await fetch(statement.order_by(AuditEvent.created_at))

    return _rows


@pytest_asyncio.fixture
async def member_factory(seed):
    """A password user with one active membership; returns (user, organization)."""

    async def _member(
        email: str = "user@example.com",
        role: MembershipRole = MembershipRole.admin,
        tier: SubscriptionTier = SubscriptionTier.professional,
        status: SubscriptionStatus = SubscriptionStatus.active,
        organization: Organization = None,
        **organization_fields,
    ):
        if organization is None:
            plan = PLAN_CATALOG[tier]
            fields = {
                "name": f"{email.split('@')[0].title()} Housing",
                "subscription_tier": tier,
                "subscription_status": status,
                "features_enabled": dict(plan.features),
                "max_residents": plan.max_residents,
                "max_properties": plan.max_properties,
                "subscription_start_date": utcnow() - timedelta(days=30),
            }
            fields.update(organization_fields)
            organization = Organization(**fields)
            await seed(organization)
        user = User(email=email, password_hash=hash_password(PASSWORD))
        await seed(user)
        await seed(
            Membership(
                user_id=user.id,
                organization_id=organization.id,
                role=role,
                is_primary=True,
                status=MembershipStatus.active,
            )
        )
        return user, organization

    return _member

