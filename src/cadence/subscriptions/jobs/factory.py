"""
Job runner construction.

``build_job_runner`` is called once per process (API startup, worker boot,
CLI command). It reads the scheduler backend from settings and registers
the complete job catalogue.
"""

from typing import Any

import structlog

from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.jobs.schedulers import CaptureScheduler, InlineScheduler, Scheduler
from cadence.subscriptions.settings import SchedulerBackend, Settings, get_settings

logger = structlog.get_logger(__name__)


def default_job_classes() -> tuple[type[Job[Any]], ...]:
    """Every concrete job, one per ``JobType``."""
    from cadence.subscriptions.billing.jobs import (
        ChargeBillingCyclesJob,
        RebillSubscriptionJob,
        RecurringBillingChargeJob,
        ScheduleMerchantsToChargeJob,
        TagSubscriptionOrderJob,
    )
    from cadence.subscriptions.dunning.jobs import DunningStartJob, DunningStopJob
    from cadence.subscriptions.merchants.jobs import DisableMerchantJob
    from cadence.subscriptions.notifications.jobs import (
        CustomerSendEmailJob,
        MerchantSendEmailJob,
        SendInventoryFailureEmailJob,
        SendMonthlyInventoryFailureEmailJob,
        SendWeeklyInventoryFailureEmailJob,
    )

    return (
        RecurringBillingChargeJob,
        ScheduleMerchantsToChargeJob,
        ChargeBillingCyclesJob,
        RebillSubscriptionJob,
        TagSubscriptionOrderJob,
        DunningStartJob,
        DunningStopJob,
        DisableMerchantJob,
        CustomerSendEmailJob,
        MerchantSendEmailJob,
        SendInventoryFailureEmailJob,
        SendWeeklyInventoryFailureEmailJob,
        SendMonthlyInventoryFailureEmailJob,
    )


def build_scheduler(settings: Settings) -> Scheduler:
    backend = settings.scheduler_backend

    if backend is SchedulerBackend.CLOUD_TASKS:
        from cadence.subscriptions.jobs.schedulers.cloud_tasks import CloudTasksScheduler

        return CloudTasksScheduler(settings.cloud_tasks)
    if backend is SchedulerBackend.CELERY:
        from cadence.subscriptions.jobs.schedulers.celery import CeleryScheduler

        return CeleryScheduler()
    if backend is SchedulerBackend.TEST:
        return CaptureScheduler(execute_url=f"http://localhost{settings.jobs.execute_path}")
    return InlineScheduler()


def build_job_runner(settings: Settings | None = None, **overrides: Any) -> JobRunner:
    """Build a runner with the configured scheduler and the full catalogue.

    ``overrides`` are passed to ``JobRunner``; ``scheduler`` replaces the
    configured backend.
    """
    settings = settings or get_settings()
    scheduler = overrides.pop("scheduler", None) or build_scheduler(settings)
    runner = JobRunner(scheduler, settings=settings, **overrides)
    runner.register(*default_job_classes())

    missing = runner.missing_job_types()
    if missing:
        raise RuntimeError(
            "Job types without a registered class: "
            + ", ".join(sorted(job_type.value for job_type in missing))
        )

    logger.info(
        "jobs.runner.built",
        scheduler=type(scheduler).__name__,
        job_types=len(runner.registered_job_types),
    )
    return runner


__all__ = ["build_job_runner", "build_scheduler", "default_job_classes"]
