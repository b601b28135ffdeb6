# tests/conftest.py
import os

# Settings are read at import time; point them at a throwaway database first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DEBUG", "true")

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from siteguard import models  # noqa: F401
from siteguard.core.rate_limit import reset_rate_limits
from siteguard.core.security import generate_api_key
from siteguard.database import Base, build_engine, get_db
from siteguard.main import app
from siteguard.models.enums import UserRole
from siteguard.models.site import Site
from siteguard.models.user import User
from siteguard.services.entity_store import EntityStore
from siteguard.services.sync import SyncService


# --- Database Fixtures ---

@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = build_engine("sqlite+aiosqlite://")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """Session for service-level tests. Not for use alongside the HTTP client."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db):
    return EntityStore(db)


@pytest.fixture
def sync_service(db):
    return SyncService.for_session(db)


# --- Seed data ---

async def _make_user(session: AsyncSession, role: UserRole, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{name.lower().replace(' ', '.')}.{uuid.uuid4().hex[:6]}@safety.test",
        name=name,
        role=role,
        api_key=generate_api_key(),
        key_enabled=True,
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def seeded(session_factory):
    """Committed users and a site, for tests that go through HTTP."""
    async with session_factory() as session:
        data = {
            "supervisor": await _make_user(session, UserRole.SUPERVISOR, "Site Supervisor"),
            "worker": await _make_user(session, UserRole.WORKER, "Field Worker"),
            "manager": await _make_user(session, UserRole.SAFETY_MANAGER, "Safety Manager"),
            "admin": await _make_user(session, UserRole.ADMIN, "Safety Admin"),
        }
        site = Site(id=uuid.uuid4(), name="Downtown Construction Site", address="123 Main St")
        session.add(site)
        await session.commit()
        data["site"] = site
    return data


@pytest.fixture
async def supervisor(db):
    return await _make_user(db, UserRole.SUPERVISOR, "Site Supervisor")


@pytest.fixture
async def worker(db):
    return await _make_user(db, UserRole.WORKER, "Field Worker")


@pytest.fixture
async def managers(db):
    return [
        await _make_user(db, UserRole.SAFETY_MANAGER, "Safety Manager"),
        await _make_user(db, UserRole.ADMIN, "Safety Admin"),
    ]


@pytest.fixture
async def site(store):
    return await store.create(Site, name="Industrial Park Project", address="456 Industrial Blvd")


# --- HTTP client ---

@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    reset_rate_limits()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
