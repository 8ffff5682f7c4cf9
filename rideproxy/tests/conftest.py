"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from rideproxy.app.main import app
from rideproxy.app.db.session import get_db, Base
from rideproxy.app.core.exceptions import SendFailedError
from rideproxy.app.core.redis_client import get_redis
from rideproxy.app.services.messaging import get_messenger

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Event handler to enable foreign keys for SQLite
from sqlalchemy import event
from sqlalchemy.pool import Pool

@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.scripts = []
    
    async def ping(self):
        return True
    
    async def get(self, key):
        return self.store.get(key)
        
    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True
    
    async def delete(self, key):
        if key in self.store:
            del self.store[key]
            return 1
        return 0
    
    async def exists(self, key):
        return 1 if key in self.store else 0

    def register_script(self, script):
        self.scripts.append(script)
        return MockReleaseScript(self)
        
    async def flushdb(self):
        self.store = {}


class MockReleaseScript:
    """In-memory stand-in for the lock release script: delete the key if it holds the token."""
    
    def __init__(self, redis):
        self.redis = redis
    
    async def __call__(self, keys=None, args=None, client=None):
        key, token = keys[0], args[0]
        if self.redis.store.get(key) != token:
            return 0
        del self.redis.store[key]
        return 1


class RecordingMessenger:
    """Stands in for the MessageBird client and records every SMS."""
    
    def __init__(self):
        self.sent = []
        self.reject = set()
    
    async def send_sms(self, originator, recipient, body):
        if recipient in self.reject:
            raise SendFailedError(recipient, "HTTP 422", errors=[{"code": 9, "description": "no balance"}])
        self.sent.append({"originator": originator, "recipient": recipient, "body": body})
        return {"id": f"msg-{len(self.sent)}"}


@pytest.fixture
def redis_client():
    return MockRedis()


@pytest.fixture
def messenger():
    return RecordingMessenger()


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def apply_overrides(redis_client, messenger):
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return redis_client

    async def override_get_messenger():
        return messenger

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_messenger] = override_get_messenger
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
async def example_directory(client):
    """
    Register the demo parties and a single proxy number.
    
    Returns:
        dict with customer/driver ids keyed by name and the proxy numbers
    """
    ids = {}
    for name, number in [("alice", "31600000001"), ("bob", "31600000002")]:
        response = await client.post("/v1/customers", json={"name": name, "number": number})
        assert response.status_code == 201
        ids[name] = response.json()["id"]
    for name, number in [("carol", "31600000003"), ("dave", "31600000004")]:
        response = await client.post("/v1/drivers", json={"name": name, "number": number})
        assert response.status_code == 201
        ids[name] = response.json()["id"]
    
    response = await client.post("/v1/proxy-numbers", json={"number": "31900000001"})
    assert response.status_code == 201
    ids["v1"] = response.json()["id"]
    return ids
