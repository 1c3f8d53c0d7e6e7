"""Synchronous in-process scheduler."""

from typing import Any

import structlog

from cadence.subscriptions.jobs.envelope import JobEnvelope
from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions

logger = structlog.get_logger(__name__)


class InlineScheduler(Scheduler):
    """Runs each job immediately in the calling process.

    The job is serialized and rebuilt first so that anything which would not
    survive a real queue fails here too. No durability: retryable errors
    propagate to the caller and ``schedule_time`` is ignored.
    """

    async def enqueue(self, job: Job[Any], options: SchedulerOptions | None = None) -> None:
        if self.runner is None:
            raise RuntimeError("InlineScheduler is not bound to a runner")

        if options and options.schedule_time:
            logger.debug(
                "scheduler.inline.schedule_time_ignored",
                job_name=job.name,
                schedule_time=options.schedule_time.isoformat(),
            )

        envelope = JobEnvelope.parse(job.to_json())
        await self.runner.execute(envelope)
