"""
Centralized Test Configuration.

Every test gets its own in-memory SQLite database (foreign keys on), a
MockRedis standing in for the token blacklist, and factory fixtures for
the tracking entities.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, insert
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from tracker_backend.app.main import app
from tracker_backend.app.db.session import get_db, Base
from tracker_backend.app.core.jwt import create_access_token
from tracker_backend.app.core.security import set_password
from tracker_backend.app.core import token_revocation
from tracker_backend.app.models.application_settings import ApplicationSettings
from tracker_backend.app.models.device import Device, device_owners
from tracker_backend.app.models.enums import GeoFenceType, PasswordHashMethod
from tracker_backend.app.models.geofence import GeoFence, geofence_devices, geofence_owners
from tracker_backend.app.models.maintenance import Maintenance
from tracker_backend.app.models.position import Position
from tracker_backend.app.models.user import User
from tracker_backend.app.models.user_settings import UIStateEntry, UserSettings

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        return await self.set(key, value, ex=ttl)

    async def delete(self, key):
        if self._closed:
            return 0
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, mock_redis, monkeypatch):
    """Route the app to the per-test database and the mock Redis."""
    monkeypatch.setattr(token_revocation, "redis_client", mock_redis)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def auth_headers(user: User) -> dict:
    token = create_access_token(data={"sub": user.login, "user_id": user.id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def make_user(db_session):
    async def _make_user(login, password="secret", admin=False, manager=False, read_only=False,
                         managed_by=None, method=PasswordHashMethod.MD5):
        user = User(
            login=login,
            admin=admin,
            manager=manager,
            read_only=read_only,
            managed_by_id=managed_by.id if managed_by else None,
        )
        set_password(user, method, password)
        db_session.add(user)
        await db_session.flush()
        db_session.add(UserSettings.defaults(user.id))
        db_session.add(UIStateEntry.default_archive_grid(user.id))
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_app_settings(db_session):
    async def _make_app_settings(**fields):
        app_settings = ApplicationSettings.defaults()
        for field, value in fields.items():
            setattr(app_settings, field, value)
        db_session.add(app_settings)
        await db_session.commit()
        return app_settings

    return _make_app_settings


@pytest.fixture
def make_device(db_session):
    async def _make_device(owners, unique_id, name=None, odometer=0.0, maintenances=()):
        device = Device(unique_id=unique_id, name=name or unique_id, odometer=odometer)
        db_session.add(device)
        await db_session.flush()
        for owner in owners:
            await db_session.execute(insert(device_owners).values(device_id=device.id, user_id=owner.id))
        for index, (name_, last_service, interval) in enumerate(maintenances):
            db_session.add(Maintenance(device_id=device.id, name=name_, index_no=index,
                                       last_service=last_service, service_interval=interval))
        await db_session.commit()
        return device

    return _make_device


@pytest.fixture
def make_position(db_session):
    async def _make_position(device, time, latitude, longitude, speed=0.0, valid=True, latest=False):
        position = Position(device_id=device.id, time=time, latitude=latitude, longitude=longitude,
                            speed=speed, valid=valid)
        db_session.add(position)
        await db_session.flush()
        if latest:
            device.latest_position_id = position.id
        await db_session.commit()
        return position

    return _make_position


@pytest.fixture
def make_geofence(db_session):
    async def _make_geofence(owners, name, points, type=GeoFenceType.POLYGON, radius=None, devices=()):
        geo_fence = GeoFence(name=name, type=type, points=points, radius=radius)
        db_session.add(geo_fence)
        await db_session.flush()
        for owner in owners:
            await db_session.execute(insert(geofence_owners).values(geofence_id=geo_fence.id, user_id=owner.id))
        for device in devices:
            await db_session.execute(insert(geofence_devices).values(geofence_id=geo_fence.id, device_id=device.id))
        await db_session.commit()
        return geo_fence

    return _make_geofence


def at(minute: int, second: int = 0) -> datetime:
    return datetime(2024, 5, 1, 12, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def ts():
    return at
