"""
Job dispatch.

Jobs are immutable, serializable units of work. A ``JobRunner`` owns the
job-type registry and one ``Scheduler`` that decides where jobs execute.
"""

from cadence.subscriptions.jobs.envelope import JobEnvelope, JobParameters
from cadence.subscriptions.jobs.job import SYSTEM_MERCHANT_KEY, EmptyPayload, Job, JobPayload
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.jobs.schedulers import (
    CaptureScheduler,
    InlineScheduler,
    Scheduler,
    SchedulerOptions,
)
from cadence.subscriptions.jobs.types import (
    ErrorClassification,
    JobOutcome,
    JobQueue,
    JobResult,
    JobType,
)

__all__ = [
    "SYSTEM_MERCHANT_KEY",
    "CaptureScheduler",
    "EmptyPayload",
    "ErrorClassification",
    "InlineScheduler",
    "Job",
    "JobEnvelope",
    "JobOutcome",
    "JobParameters",
    "JobPayload",
    "JobQueue",
    "JobResult",
    "JobRunner",
    "JobType",
    "Scheduler",
    "SchedulerOptions",
]
