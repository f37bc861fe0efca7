"""Async test fixtures for DealDesk tests using SQLite."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from dealdesk.config import settings
from dealdesk.database import enable_sqlite_transactions, get_db, get_session_factory
from dealdesk.models.base import Base
from dealdesk.services import user_svc


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine(tmp_path):
    # A file database so test, request and background sessions each get a connection.
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'dealdesk_test.db'}", echo=False)
    enable_sqlite_transactions(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def user(db: AsyncSession):
    return await user_svc.create_user(
        db, "owner@example.com", "s3cret-pass", first_name="Olive", last_name="Owner"
    )


@pytest.fixture(autouse=True)
def open_webhooks(monkeypatch: pytest.MonkeyPatch):
    """Tests start with unsecured endpoints and the default owner policy."""
    monkeypatch.setattr(settings, "iclosed_webhook_secret", "")
    monkeypatch.setattr(settings, "kixie_webhook_secret", "")
    monkeypatch.setattr(settings, "security_fail_closed", False)
    monkeypatch.setattr(settings, "owner_policy", "first_user")
    monkeypatch.setattr(settings, "encryption_key", "test-encryption-key")


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTPX async test client against the DealDesk app."""
    from dealdesk.app import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
