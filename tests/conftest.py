"""
Shared test fixtures.

Uses a throwaway SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  Each test gets its own database file, so
concurrent units of work really use separate connections.  Redis is
replaced by ``FakeRedis``, an in-process stand-in for the handful of
commands the engine issues (SET NX, GET and the two Lua scripts).
"""

from datetime import date
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fleet.domain.enums import AccountStatus, UserRole, VehicleStatus
from fleet.infrastructure.database import Base
from fleet.infrastructure.identity import NEXT_ID_SCRIPT, IdentityRegistry
from fleet.infrastructure.locks import RELEASE_SCRIPT
from fleet.infrastructure.models import UserModel, VehicleModel
from fleet.services.allocation import AllocationManager
from fleet.services.fuel import FuelWorkflowController
from fleet.services.maintenance import MaintenanceWorkflowController
from fleet.services.reconciliation import Reconciler
from fleet.services.trips import TripLifecycleController
from fleet.services.unit_of_work import UnitOfWork
from fleet.services.users import UserService
from fleet.services.vehicles import VehicleService


class FakeRedis:
    """Single-process Redis double.  Every command is atomic on the loop."""

    def __init__(self):
        self.data: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = str(value)
        return True

    async def get(self, key):
        return self.data.get(key)

    async def eval(self, script, numkeys, *args):
        keys, argv = args[:numkeys], args[numkeys:]
        if script == RELEASE_SCRIPT:
            if self.data.get(keys[0]) == argv[0]:
                del self.data[keys[0]]
                return 1
            return 0
        if script == NEXT_ID_SCRIPT:
            current = max(int(self.data.get(keys[0], 0)), int(argv[0])) + 1
            self.data[keys[0]] = str(current)
            return current
        raise NotImplementedError(script)

    async def ping(self):
        return True

    async def aclose(self):
        pass


# ── Storage ───────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh schema in a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'fleet.db'}", echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def uow(session_factory, redis) -> UnitOfWork:
    return UnitOfWork(
        session_factory,
        redis,
        timeout_seconds=10.0,
        lock_ttl_seconds=30,
        lock_wait_seconds=5.0,
        max_retries=3,
    )


@pytest.fixture
def identity(redis) -> IdentityRegistry:
    return IdentityRegistry(redis)


# ── Services ──────────────────────────────────────────────────────────


@pytest.fixture
def allocation(uow) -> AllocationManager:
    return AllocationManager(uow)


@pytest.fixture
def trips(uow, identity) -> TripLifecycleController:
    return TripLifecycleController(uow, identity)


@pytest.fixture
def maintenance(uow, identity) -> MaintenanceWorkflowController:
    return MaintenanceWorkflowController(uow, identity)


@pytest.fixture
def fuel(uow, identity) -> FuelWorkflowController:
    return FuelWorkflowController(uow, identity)


@pytest.fixture
def vehicles(uow, identity) -> VehicleService:
    return VehicleService(uow, identity)


@pytest.fixture
def users(uow, identity) -> UserService:
    return UserService(uow, identity)


@pytest.fixture
def reconciler(uow) -> Reconciler:
    return Reconciler(uow)


# ── Seed helpers ──────────────────────────────────────────────────────


@pytest.fixture
def make_user(session_factory):
    async def _make(
        user_id: str,
        role: UserRole = UserRole.EMPLOYEE,
        status: AccountStatus = AccountStatus.ACTIVE,
        assigned_vehicle: Optional[str] = None,
    ) -> UserModel:
        async with session_factory() as session:
            user = UserModel(
                id=user_id,
                email=f"{user_id.lower()}@fleet.test",
                name=f"User {user_id}",
                role=role,
                status=status,
                assigned_vehicle=assigned_vehicle,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
def make_vehicle(session_factory):
    async def _make(
        vehicle_id: str,
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        odometer_km: float = 1000.0,
        days_since_service: int = 10,
    ) -> VehicleModel:
        async with session_factory() as session:
            vehicle = VehicleModel(
                id=vehicle_id,
                name=f"Vehicle {vehicle_id}",
                registration=f"REG-{vehicle_id}",
                make="Tata",
                model="Ace",
                type="Truck",
                year=2020,
                odometer_km=odometer_km,
                days_since_service=days_since_service,
                status=status,
            )
            session.add(vehicle)
            await session.commit()
            return vehicle

    return _make


@pytest.fixture
def fetch(session_factory):
    """Re-read a row in a fresh session."""

    async def _fetch(model, key):
        async with session_factory() as session:
            return await session.get(model, key)

    return _fetch


@pytest.fixture
def tomorrow() -> date:
    return date.fromordinal(date.today().toordinal() + 1)


# ── API ───────────────────────────────────────────────────────────────


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Actor-Id": "U001", "X-Actor-Role": "ADMIN"}


@pytest.fixture
def employee_headers():
    def _headers(user_id: str) -> dict[str, str]:
        return {"X-Actor-Id": user_id, "X-Actor-Role": "EMPLOYEE"}

    return _headers


@pytest_asyncio.fixture
async def client(session_factory, redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient wired to the test database and FakeRedis."""
    from fleet.api import dependencies
    from fleet.api.app import create_app
    from fleet.api.middleware import limiter

    app = create_app(run_worker=False)
    app.dependency_overrides[dependencies.get_session_factory] = (
        lambda: session_factory
    )
    app.dependency_overrides[dependencies.get_redis_client] = lambda: redis
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True
