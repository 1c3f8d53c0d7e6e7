"""
Celery application configuration.

Workers consume the job queues and run the beat schedules that trigger
recurring billing and the inventory failure digests.
"""

from typing import Any

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging
from kombu import Queue

from cadence.subscriptions.jobs.types import JobQueue, JobType
from cadence.subscriptions.logging import configure_logging
from cadence.subscriptions.settings import settings

# Create Celery application
celery_app = Celery(
    "cadence_subscriptions",
    broker=settings.celery.broker_url,
    backend=settings.celery.result_backend,
    include=["cadence.subscriptions.jobs.tasks"],
)

# Configure Celery settings
celery_app.conf.update(
    # Queue configuration
    task_default_queue=JobQueue.DEFAULT.value,
    task_queues=tuple(Queue(queue.value, routing_key=queue.value) for queue in JobQueue),
    # Task execution settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task result settings
    result_expires=3600,  # 1 hour
    task_track_started=True,
    task_time_limit=settings.celery.task_time_limit,
    task_soft_time_limit=settings.celery.task_soft_time_limit,
    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=1000,
)

BEAT_SCHEDULES: dict[str, tuple[crontab, JobType]] = {
    "billing-recurring-charge": (crontab(minute=0), JobType.RECURRING_BILLING_CHARGE),
    "inventory-weekly-digest": (
        crontab(minute=0, hour=9, day_of_week="mon"),
        JobType.SEND_WEEKLY_INVENTORY_FAILURE_EMAIL,
    ),
    "inventory-monthly-digest": (
        crontab(minute=0, hour=9, day_of_month=1),
        JobType.SEND_MONTHLY_INVENTORY_FAILURE_EMAIL,
    ),
}


@setup_logging.connect
def configure_worker_logging(**kwargs: Any) -> None:
    """Keep Celery off the root logger; workers log through structlog."""
    configure_logging(settings)


@celery_app.on_after_finalize.connect  # type: ignore[misc]
def setup_periodic_tasks(sender: Any, **kwargs: Any) -> None:
    """Register the billing trigger and inventory digest beats."""
    import structlog

    from cadence.subscriptions.jobs.tasks import enqueue_job_task

    for name, (schedule, job_type) in BEAT_SCHEDULES.items():
        sender.add_periodic_task(
            schedule,
            enqueue_job_task.s(job_type.value),
            name=name,
            queue=JobQueue.DEFAULT.value,
        )

    logger = structlog.get_logger(__name__)
    logger.info(
        "celery.worker.configured",
        broker=settings.celery.broker_url,
        backend=settings.celery.result_backend,
        queues=[queue.value for queue in JobQueue],
        periodic_tasks=list(BEAT_SCHEDULES),
    )


if __name__ == "__main__":
    # For running worker directly: python -m cadence.subscriptions.celery_app worker
    celery_app.start()
