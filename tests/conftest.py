"""
Global pytest configuration and fixtures for Cadence Subscriptions tests.

Every test runs against an in-memory SQLite store and a fake commerce
admin API. The job runner captures enqueued jobs instead of running them.
"""

import os

# Must be set before the settings singleton is first imported
os.environ["ENVIRONMENT"] = "test"
os.environ.setdefault("DATABASE__URL", "sqlite:///:memory:")
os.environ.pop("WEBHOOKS__SECRET", None)

from collections.abc import AsyncIterator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

import cadence.subscriptions.models  # noqa: E402,F401
from cadence.subscriptions.db import Base  # noqa: E402
from cadence.subscriptions.jobs.context import JobContext  # noqa: E402
from cadence.subscriptions.jobs.factory import build_job_runner  # noqa: E402
from cadence.subscriptions.jobs.runner import JobRunner  # noqa: E402
from cadence.subscriptions.jobs.schedulers import CaptureScheduler  # noqa: E402
from cadence.subscriptions.settings import Environment, Settings, reset_settings  # noqa: E402
from tests.fakes import DEFAULT_MERCHANT, FakeAdminClient, FakeAdminFactory  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings():
    """Drop the cached settings so env patches in one test do not leak."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(environment=Environment.TEST)  # type: ignore[call-arg]


# ============================================================
# Database
# ============================================================


@pytest_asyncio.fixture
async def db_engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with every table created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy own BEGIN so savepoints behave as on PostgreSQL
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


# ============================================================
# Commerce API
# ============================================================


@pytest.fixture
def admin_factory() -> FakeAdminFactory:
    return FakeAdminFactory()


@pytest.fixture
def admin(admin_factory: FakeAdminFactory) -> FakeAdminClient:
    """Fake admin client for the default merchant."""
    return admin_factory.client(DEFAULT_MERCHANT)


# ============================================================
# Job runner
# ============================================================


@pytest.fixture
def scheduler() -> CaptureScheduler:
    return CaptureScheduler()


@pytest.fixture
def runner(
    test_settings: Settings,
    scheduler: CaptureScheduler,
    session_factory,
    admin_factory: FakeAdminFactory,
) -> JobRunner:
    return build_job_runner(
        test_settings,
        scheduler=scheduler,
        session_factory=session_factory,
        admin_factory=admin_factory,
    )


@pytest.fixture
def context(runner: JobRunner) -> JobContext:
    return runner.context
