"""
Test configuration and fixtures.

Each test gets its own SQLite file (NullPool, so every session has its
own connection and per-item transactions are really independent) with
foreign keys switched on.  Redis is fakeredis.
"""

import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-testing-only")

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal
from typing import Any

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.constants import UserRole
from app.core.security import create_access_token
from app.db.models import Base
from app.db.session import make_session_factory
from app.repositories.agents import create_agent
from app.repositories.customers import create_customer
from app.repositories.users import create_user, token_claims
from app.rules.context import RuleContext

TODAY = date(2026, 3, 31)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'rules.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def ctx() -> RuleContext:
    """Rule context pinned to TODAY."""
    return RuleContext.for_day("tester@policy-rules.local", TODAY)


@pytest_asyncio.fixture
async def customer(session_factory):
    async with session_factory() as s:
        row = await create_customer(s, name="Ravi Kumar", email="ravi@example.com")
        await s.commit()
    return row


@pytest_asyncio.fixture
async def agent(session_factory):
    async with session_factory() as s:
        row = await create_agent(s, name="Asha Menon", email="asha@agency.local")
        await s.commit()
    return row


@pytest.fixture
def policy_terms(customer, agent) -> dict[str, Any]:
    """Keyword arguments for a one-year policy ending TODAY."""
    return {
        "policy_type": "Health",
        "coverage_amount": Decimal("500000.00"),
        "premium_amount": Decimal("1200.00"),
        "start_date": date(2025, 3, 31),
        "end_date": TODAY,
        "customer_id": customer.id,
        "agent_id": agent.id,
    }


@pytest_asyncio.fixture
async def redis_client() -> AsyncGenerator[Any, None]:
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


# ─── API ──────────────────────────────────────────────────

@pytest.fixture
def app(session_factory, redis_client):
    """FastAPI app wired to the test database and fake Redis."""
    from app.api.deps import get_db, get_redis, get_session_factory
    from app.main import app as fastapi_app

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async def _get_redis():
        yield redis_client

    fastapi_app.dependency_overrides[get_db] = _get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_redis] = _get_redis
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


async def _user_token(session_factory, email: str, role: UserRole) -> str:
    async with session_factory() as s:
        user = await create_user(s, email=email, password="secret123", full_name=email, role=role.value)
        await s.commit()
    return create_access_token(token_claims(user))


@pytest_asyncio.fixture
async def operator_token(session_factory) -> str:
    return await _user_token(session_factory, "operator@policy-rules.local", UserRole.OPERATOR)


@pytest_asyncio.fixture
async def viewer_token(session_factory) -> str:
    return await _user_token(session_factory, "viewer@policy-rules.local", UserRole.VIEWER)


@pytest_asyncio.fixture
async def client(app, operator_token) -> AsyncGenerator[AsyncClient, None]:
    """Client authenticated as an OPERATOR."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {operator_token}"},
    ) as c:
        yield c


@pytest_asyncio.fixture
async def anon_client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
