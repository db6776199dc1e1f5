"""
Centralized Test Configuration.
"""

import os

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

from backend.app.main import app
from backend.app.db.session import get_db, Base
from backend.app.core.jwt import create_access_token
from backend.app.models.enums import ActorType, StaffRole
from backend.app.schemas.actor import Actor
from backend.app.schemas.order import OrderCreate
from backend.app.services.order_intake import create_order

FORWARDER_ID = "fwd_alpha"
OTHER_FORWARDER_ID = "fwd_beta"
WAREHOUSE_ID = "wh_main"
OTHER_WAREHOUSE_ID = "wh_other"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


@pytest.fixture(scope="session", autouse=True)
def apply_overrides():
    """Apply the database override once for the session."""

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
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


@pytest.fixture
def session_factory():
    return TestingSessionLocal


# Actors

@pytest.fixture
def worker():
    return Actor(
        id="staff_worker",
        type=ActorType.STAFF,
        role=StaffRole.WAREHOUSE_WORKER.value,
        forwarder_id=FORWARDER_ID,
        warehouse_ids=[WAREHOUSE_ID],
    )


@pytest.fixture
def supervisor():
    return Actor(
        id="staff_supervisor",
        type=ActorType.STAFF,
        role=StaffRole.SUPERVISOR.value,
        forwarder_id=FORWARDER_ID,
        warehouse_ids=[WAREHOUSE_ID],
    )


@pytest.fixture
def manager():
    return Actor(
        id="staff_manager",
        type=ActorType.STAFF,
        role=StaffRole.MANAGER.value,
        forwarder_id=FORWARDER_ID,
        warehouse_ids=[WAREHOUSE_ID, OTHER_WAREHOUSE_ID],
    )


@pytest.fixture
def outside_worker():
    """Worker of the same forwarder assigned to a different warehouse."""
    return Actor(
        id="staff_outside",
        type=ActorType.STAFF,
        role=StaffRole.WAREHOUSE_WORKER.value,
        forwarder_id=FORWARDER_ID,
        warehouse_ids=[OTHER_WAREHOUSE_ID],
    )


@pytest.fixture
def forwarder():
    return Actor(id=FORWARDER_ID, type=ActorType.FORWARDER, forwarder_id=FORWARDER_ID)


@pytest.fixture
def other_forwarder():
    return Actor(id=OTHER_FORWARDER_ID, type=ActorType.FORWARDER, forwarder_id=OTHER_FORWARDER_ID)


@pytest.fixture
def system_actor():
    return Actor(id="system", type=ActorType.SYSTEM)


@pytest.fixture
def auth_headers():
    """Build bearer headers for an actor."""

    def _headers(actor: Actor) -> dict:
        claims = {
            "sub": actor.id,
            "actor_type": actor.type.value,
            "role": actor.role,
            "forwarder_id": actor.forwarder_id,
            "warehouse_ids": actor.warehouse_ids,
        }
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _headers


@pytest.fixture
def order_factory(db_session, forwarder):
    """Create orders in the incoming state through intake."""
    counter = {"n": 0}

    async def _create(warehouse_id: str = WAREHOUSE_ID, tracking_number: str = None):
        counter["n"] += 1
        data = OrderCreate(
            warehouse_id=warehouse_id,
            customer_id=f"cust_{counter['n']}",
            tracking_number=tracking_number or f"TRK{counter['n']:05d}",
            merchant_name="Test Merchant",
        )
        return await create_order(db_session, data, forwarder)

    return _create


@pytest.fixture
async def order(order_factory):
    return await order_factory()
