"""Dependencies handed to jobs when they are performed."""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cadence.subscriptions.settings import Settings, get_settings

if TYPE_CHECKING:
    from cadence.subscriptions.commerce.client import CommerceAdminClient
    from cadence.subscriptions.jobs.job import Job
    from cadence.subscriptions.jobs.runner import JobRunner
    from cadence.subscriptions.jobs.schedulers.base import SchedulerOptions

AdminFactory = Callable[[str], AbstractAsyncContextManager["CommerceAdminClient"]]


@dataclass
class JobContext:
    """Explicit execution context: runner, store and remote API access.

    Built once per runner and shared by every job it executes. Holds no
    per-invocation state.
    """

    runner: "JobRunner"
    session_factory: async_sessionmaker[AsyncSession] | None = None
    admin_factory: AdminFactory | None = None
    settings: Settings = field(default_factory=get_settings)

    async def enqueue(self, job: "Job[Any]", options: "SchedulerOptions | None" = None) -> Any:
        return await self.runner.enqueue(job, options)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Database session committed on success, rolled back on error."""
        if self.session_factory is None:
            from cadence.subscriptions.db import get_session_maker

            self.session_factory = get_session_maker()

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def admin(self, merchant_key: str) -> AbstractAsyncContextManager["CommerceAdminClient"]:
        """Authenticated commerce admin client for ``merchant_key``."""
        if self.admin_factory is None:
            from cadence.subscriptions.commerce.session import merchant_admin_factory

            self.admin_factory = merchant_admin_factory(self.session, self.settings)
        return self.admin_factory(merchant_key)
