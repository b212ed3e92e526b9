"""
Pytest configuration for the whole suite.

Settings are read at import time, so the environment is pinned here before
anything under ``src`` is imported: SQLite instead of Postgres, cheap bcrypt
rounds and known staff credentials.
"""
import os

os.environ["APP_ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test_queue.db")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STAFF_USERNAME"] = "admin"
os.environ["STAFF_PASSWORD"] = "admin123"
os.environ.pop("STAFF_PASSWORD_HASH", None)
os.environ.pop("STAFF_ACCOUNTS", None)

import asyncio
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.common.database.database import get_db_session
from src.common.queue import MemoryTokenStore, QueueEngine
from src.common.queue.bootstrap import create_queue_engine
from src.main import app
from src.models.models import Base, TokenPriority
from src.seed.seed_database import seed_reference_data


class FakeClock:
    """Settable clock handed to the engine instead of ``datetime.now``."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def set(self, hour: int, minute: int = 0, second: int = 0) -> None:
        self.current = self.current.replace(hour=hour, minute=minute, second=second, microsecond=0)

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.current += timedelta(minutes=minutes, seconds=seconds)


class SlowStore(MemoryTokenStore):
    """Yields to the event loop on every write so concurrent callers interleave."""

    async def save(self, token):
        await asyncio.sleep(0.001)
        await super().save(token)


class FailingStore(MemoryTokenStore):
    """Raises on save while ``failing`` is set."""

    def __init__(self):
        super().__init__()
        self.failing = False

    async def save(self, token):
        if self.failing:
            raise RuntimeError("database unavailable")
        await super().save(token)


# Engine layout used by the unit tests:
#   department 1 (OPD): doctors 10 and 11
#   department 2 (CARD): doctor 20
OPD, CARD = 1, 2


def build_engine(store, clock, **kwargs) -> QueueEngine:
    options = dict(
        default_consultation_minutes=15,
        rolling_window=10,
        min_samples=3,
        max_patients_per_day=50,
        retention_days=0,
    )
    options.update(kwargs)
    engine = QueueEngine(store=store, clock=clock, **options)
    engine.register_department(OPD, "OPD")
    engine.register_department(CARD, "CARD")
    engine.register_doctor(10, OPD)
    engine.register_doctor(11, OPD)
    engine.register_doctor(20, CARD)
    return engine


# ============================================================================
# Engine fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 9, 0, 0))


@pytest.fixture
def store():
    return MemoryTokenStore()


@pytest.fixture
def engine(store, clock):
    return build_engine(store, clock)


@pytest.fixture
def issue(engine, clock):
    """Create a token at a given wall-clock time."""

    async def _issue(
        patient_id,
        doctor_id=10,
        priority=TokenPriority.NORMAL,
        at=None,
        department_id=None,
        queue_engine=None,
    ):
        target = queue_engine or engine
        if at is not None:
            clock.set(*at)
        if department_id is None:
            department_id = target.doctor_department(doctor_id) if doctor_id is not None else OPD
        code = "OPD" if department_id == OPD else "CARD"
        return await target.create_token(
            patient_id=patient_id,
            department_id=department_id,
            department_code=code,
            doctor_id=doctor_id,
            priority=priority,
        )

    return _issue


# ============================================================================
# API fixtures
# ============================================================================

@pytest.fixture
async def session_factory(tmp_path):
    db_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_reference_data(session)
        await session.commit()
    yield factory
    await db_engine.dispose()


@pytest.fixture
async def queue_engine(session_factory, clock):
    return await create_queue_engine(session_factory, clock=clock)


@pytest.fixture
async def client(session_factory, queue_engine):
    async def override_get_db_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    app.state.queue_engine = queue_engine
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    app.state.queue_engine = None


@pytest.fixture
def staff_auth():
    return ("admin", "admin123")
