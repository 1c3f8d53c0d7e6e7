"""
Job runner.

Owns the job-type registry and exactly one scheduler. ``enqueue`` hands jobs
to the scheduler; ``execute`` rebuilds a job from its wire envelope and runs
it, swallowing terminal failures and re-raising retryable ones.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cadence.subscriptions.exceptions import UnregisteredJobError
from cadence.subscriptions.jobs.context import AdminFactory, JobContext
from cadence.subscriptions.jobs.envelope import JobEnvelope
from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions
from cadence.subscriptions.logging import bound_job_context
from cadence.subscriptions.jobs.types import JobResult, JobType
from cadence.subscriptions.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

ExecuteRequest = JobEnvelope | httpx.Request | bytes | str | Mapping[str, Any]


class JobRunner:
    """Registry plus scheduler; stateless between executions."""

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        admin_factory: AdminFactory | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._registry: dict[JobType, type[Job[Any]]] = {}
        self.scheduler = scheduler
        self.scheduler.bind(self)
        self.context = JobContext(
            runner=self,
            session_factory=session_factory,
            admin_factory=admin_factory,
            settings=settings or get_settings(),
        )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, *job_classes: type[Job[Any]]) -> "JobRunner":
        """Register job classes; the last registration for a type wins."""
        for job_class in job_classes:
            self._registry[job_class.job_type] = job_class
            logger.debug("jobs.registered", job_name=job_class.job_type.value)
        return self

    @property
    def registered_job_types(self) -> frozenset[JobType]:
        return frozenset(self._registry)

    def missing_job_types(self, expected: Iterable[JobType] = JobType) -> set[JobType]:
        """Job types with no registered class."""
        return set(expected) - set(self._registry)

    def job_class(self, job_name: str) -> type[Job[Any]]:
        try:
            return self._registry[JobType(job_name)]
        except (KeyError, ValueError) as e:
            raise UnregisteredJobError(job_name) from e

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def enqueue(self, job: Job[Any], options: SchedulerOptions | None = None) -> Any:
        """Delegate to the scheduler."""
        logger.info(
            "jobs.enqueue",
            job_name=job.name,
            merchant_key=job.merchant_key,
            queue=job.queue.value,
            schedule_time=(
                options.schedule_time.isoformat() if options and options.schedule_time else None
            ),
        )
        return await self.scheduler.enqueue(job, options)

    def build_job(self, request: ExecuteRequest) -> Job[Any]:
        """Validate an envelope and build its job without running anything."""
        envelope = JobEnvelope.parse(request)
        job_class = self.job_class(envelope.job_name)
        return job_class.from_envelope(envelope)

    async def execute(self, request: ExecuteRequest) -> JobResult:
        """Rebuild and run a job.

        Returns normally for successes and terminal failures. Re-raises the
        job's error when it is retryable so the caller's queue retries.
        """
        job = self.build_job(request)
        with bound_job_context(job.name, job.merchant_key):
            result = await job.attempt(self.context)
        result.raise_for_outcome()
        return result


__all__ = ["ExecuteRequest", "JobRunner"]
