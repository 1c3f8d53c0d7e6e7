"""Scheduler interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from cadence.subscriptions.jobs.job import Job
    from cadence.subscriptions.jobs.runner import JobRunner


@dataclass(frozen=True)
class SchedulerOptions:
    """Per-enqueue delivery options.

    Attributes:
        schedule_time: Absolute time before which the job must not run
        dispatch_deadline: How long the backend waits for the execute call
    """

    schedule_time: datetime | None = None
    dispatch_deadline: timedelta | None = None


class Scheduler(ABC):
    """Hands jobs to an execution backend."""

    runner: "JobRunner | None" = None

    def bind(self, runner: "JobRunner") -> None:
        """Attach the runner that owns this scheduler."""
        self.runner = runner

    @abstractmethod
    async def enqueue(self, job: "Job[Any]", options: SchedulerOptions | None = None) -> Any:
        """Enqueue ``job``; the returned handle is backend-specific."""
