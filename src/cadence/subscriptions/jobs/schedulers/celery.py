"""Scheduler that publishes jobs to the Celery broker."""

from typing import Any

import structlog
from celery import Celery
from kombu.exceptions import OperationalError

from cadence.subscriptions.exceptions import SchedulerError
from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions

logger = structlog.get_logger(__name__)

EXECUTE_TASK_NAME = "jobs.execute"


class CeleryScheduler(Scheduler):
    """Sends the job envelope to the ``jobs.execute`` task on the job's queue."""

    def __init__(self, app: Celery | None = None) -> None:
        self._app = app

    @property
    def app(self) -> Celery:
        if self._app is None:
            from cadence.subscriptions.celery_app import celery_app

            self._app = celery_app
        return self._app

    async def enqueue(self, job: Job[Any], options: SchedulerOptions | None = None) -> str:
        options = options or SchedulerOptions()
        send_options: dict[str, Any] = {"queue": job.queue.value}
        if options.schedule_time is not None:
            send_options["eta"] = options.schedule_time
        if options.dispatch_deadline is not None:
            send_options["time_limit"] = int(options.dispatch_deadline.total_seconds())

        try:
            result = self.app.send_task(EXECUTE_TASK_NAME, args=[job.to_wire()], **send_options)
        except OperationalError as e:
            logger.error("scheduler.celery.enqueue_failed", job_name=job.name, error=str(e))
            raise SchedulerError(f"Failed to enqueue {job.name}", context={"error": str(e)}) from e

        logger.info(
            "scheduler.celery.enqueued",
            job_name=job.name,
            merchant_key=job.merchant_key,
            task_id=result.id,
        )
        return result.id
