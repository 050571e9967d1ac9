from fastapi import Request
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from haven_auth.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from haven_auth.app.services.lockout_policy import LockoutPolicy
from haven_auth.app.services.token_service import TokenService

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


# Services are built once in create_app and live on app.state


def get_config(request: Request):
    return request.app.state.config


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_lockout_policy(request: Request) -> LockoutPolicy:
    return request.app.state.lockout_policy


def get_identity_providers(request: Request) -> dict:
    return request.app.state.identity_providers
