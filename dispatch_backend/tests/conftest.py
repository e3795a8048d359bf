"""
Centralized Test Configuration.
"""

import asyncio

import pytest
import httpx
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from dispatch_backend.app.main import app
from dispatch_backend.app.db.session import get_db, Base
from dispatch_backend.app.core.jwt import create_access_token
from dispatch_backend.app.core.redis_client import get_redis
from dispatch_backend.app.services.maps_client import GoogleMapsClient, get_maps_client

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Enable foreign keys for SQLite
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

MAPS_BASE_URL = "https://maps.test/maps/api"


class MockPubSub:
    """Subscription that yields queued messages, then blocks like an idle channel."""

    def __init__(self, messages):
        self.queue = asyncio.Queue()
        for message in messages:
            self.queue.put_nowait(message)
        self.channels = ()
        self.unsubscribed = False
        self.closed = False

    async def subscribe(self, *channels):
        self.channels = channels

    async def listen(self):
        while True:
            yield await self.queue.get()

    async def unsubscribe(self):
        self.unsubscribed = True

    async def aclose(self):
        self.closed = True


# Mock Redis for reliability in CI/CD
class MockRedis:
    """Records published change notifications instead of sending them."""

    def __init__(self):
        self.published = []
        self.fail = False
        self.pubsub_messages = []
        self.pubsubs = []

    def pubsub(self):
        pubsub = MockPubSub(self.pubsub_messages)
        self.pubsubs.append(pubsub)
        return pubsub

    async def publish(self, channel, message):
        if self.fail:
            raise RedisConnectionError("Connection refused")
        self.published.append((channel, message))
        return 1

    def channel_messages(self, channel):
        return [message for published_channel, message in self.published if published_channel == channel]


class FakeMapsProvider:
    """
    Serves canned Geocoding and Directions responses over httpx.MockTransport.

    Addresses missing from ``geocode_results`` answer ZERO_RESULTS.
    """

    def __init__(self):
        self.geocode_results = {}
        self.directions_payload = {
            "status": "OK",
            "routes": [{
                "overview_polyline": {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@"},
                "legs": [
                    {"distance": {"value": 1200}, "duration": {"value": 300}},
                    {"distance": {"value": 800}, "duration": {"value": 180}},
                ],
            }],
        }
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/geocode/json"):
            address = request.url.params.get("address")
            if address not in self.geocode_results:
                return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})
            lat, lng = self.geocode_results[address]
            return httpx.Response(200, json={
                "status": "OK",
                "results": [{"geometry": {"location": {"lat": lat, "lng": lng}}}],
            })

        if path.endswith("/directions/json"):
            return httpx.Response(200, json=self.directions_payload)

        return httpx.Response(404, json={"status": "NOT_FOUND"})

    def requests_to(self, endpoint):
        return [r for r in self.requests if r.url.path.endswith(f"/{endpoint}/json")]

    def client(self, api_key="test-key"):
        return GoogleMapsClient(
            api_key=api_key,
            base_url=MAPS_BASE_URL,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
def fake_maps():
    return FakeMapsProvider()


@pytest.fixture(autouse=True)
def apply_overrides(mock_redis, fake_maps):
    """Route the app's database, Redis and maps dependencies to test doubles."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    async def override_get_maps_client():
        return fake_maps.client()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_maps_client] = override_get_maps_client
    yield

    app.dependency_overrides = {}


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def make_auth_headers(uid, email=None):
    """Bearer header for an identity-service token."""
    token = create_access_token(data={"sub": uid, "email": email or f"{uid}@test.com"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return make_auth_headers


async def create_profile(client, uid, role, name=None):
    headers = make_auth_headers(uid)
    response = await client.post(
        "/auth/setup",
        json={"name": name or uid.title(), "role": role},
        headers=headers
    )
    assert response.status_code == 201, response.text
    return headers


@pytest.fixture
async def dispatcher_headers(client):
    return await create_profile(client, "dispatcher-1", "dispatcher", "Dana Dispatcher")


@pytest.fixture
async def admin_headers(client):
    return await create_profile(client, "admin-1", "admin", "Ada Admin")


@pytest.fixture
async def driver_headers(client):
    return await create_profile(client, "driver-1", "driver", "Dev Driver")


@pytest.fixture
async def other_driver_headers(client):
    return await create_profile(client, "driver-2", "driver", "Other Driver")


TWO_STOPS = [
    {"address": "123 Main St", "lat": 40.7, "lng": -74.0, "sequence": 0},
    {"address": "456 Oak Ave", "lat": 40.8, "lng": -73.9, "sequence": 1},
]


@pytest.fixture
def create_trip(client, dispatcher_headers):
    """Factory creating a DRAFT trip as the dispatcher; returns the trip JSON."""

    async def _create(stops=None):
        response = await client.post(
            "/trips",
            json={"stops": stops or TWO_STOPS},
            headers=dispatcher_headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def assigned_trip(client, dispatcher_headers, driver_headers, create_trip):
    """Factory creating a trip assigned to driver-1."""

    async def _create():
        trip = await create_trip()
        response = await client.post(
            f"/trips/{trip['id']}/assign",
            json={"driverId": "driver-1"},
            headers=dispatcher_headers
        )
        assert response.status_code == 200, response.text
        return trip

    return _create
