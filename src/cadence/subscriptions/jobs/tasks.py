"""
Celery tasks for the job runner.

``jobs.execute`` is the worker side of ``CeleryScheduler``: it rebuilds the
envelope and runs it, retrying retryable failures with exponential backoff.
``jobs.enqueue`` lets beat schedules enqueue cluster-wide jobs by name.
"""

import asyncio
from typing import Any

import structlog

from cadence.subscriptions.celery_app import celery_app
from cadence.subscriptions.exceptions import InvalidJobPayloadError, UnregisteredJobError
from cadence.subscriptions.jobs.factory import build_job_runner
from cadence.subscriptions.jobs.job import SYSTEM_MERCHANT_KEY
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.jobs.schedulers.celery import EXECUTE_TASK_NAME
from cadence.subscriptions.settings import settings

logger = structlog.get_logger(__name__)

ENQUEUE_TASK_NAME = "jobs.enqueue"
RETRY_BASE_SECONDS = 30

_runner: JobRunner | None = None
_loop: asyncio.AbstractEventLoop | None = None


def get_worker_runner() -> JobRunner:
    """Runner shared by every task in this worker process."""
    global _runner
    if _runner is None:
        _runner = build_job_runner()
    return _runner


def run_async(coro: Any) -> Any:
    """Run ``coro`` on this process's event loop.

    Pooled database connections are bound to the loop that opened them, so
    every task in a worker process shares one loop.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


def retry_countdown(retries: int) -> int:
    return min(RETRY_BASE_SECONDS * 2**retries, settings.celery.retry_backoff_max)


@celery_app.task(bind=True, name=EXECUTE_TASK_NAME, max_retries=settings.celery.max_retries)
def execute_job_task(self: Any, envelope: dict[str, Any]) -> dict[str, Any]:
    """Execute one job envelope."""
    runner = get_worker_runner()
    try:
        result = run_async(runner.execute(envelope))
    except (UnregisteredJobError, InvalidJobPayloadError) as e:
        # Redelivery cannot fix a malformed envelope
        logger.error("jobs.task.rejected", error=e.message, context=e.context)
        return {"status": "rejected", **e.to_dict()}
    except Exception as e:
        countdown = retry_countdown(self.request.retries)
        logger.warning(
            "jobs.task.retrying",
            job_name=envelope.get("jobName"),
            retries=self.request.retries,
            countdown=countdown,
            error=str(e),
        )
        raise self.retry(exc=e, countdown=countdown) from e

    return result.to_dict()


@celery_app.task(name=ENQUEUE_TASK_NAME)
def enqueue_job_task(job_name: str, merchant_key: str = SYSTEM_MERCHANT_KEY) -> dict[str, Any]:
    """Enqueue a payload-less job through the configured scheduler."""
    runner = get_worker_runner()
    job = runner.job_class(job_name)(merchant_key)
    handle = run_async(runner.enqueue(job))
    logger.info("jobs.task.enqueued", job_name=job_name, merchant_key=merchant_key)
    return {"job_name": job_name, "handle": handle if isinstance(handle, str) else None}


__all__ = ["enqueue_job_task", "execute_job_task", "get_worker_runner", "retry_countdown"]
