"""Scheduler backends for the job runner."""

from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions
from cadence.subscriptions.jobs.schedulers.capture import CaptureScheduler
from cadence.subscriptions.jobs.schedulers.inline import InlineScheduler

__all__ = [
    "CaptureScheduler",
    "InlineScheduler",
    "Scheduler",
    "SchedulerOptions",
]
