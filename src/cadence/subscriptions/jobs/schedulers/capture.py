"""In-memory scheduler for tests."""

from typing import Any

import httpx

from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions

DEFAULT_EXECUTE_URL = "http://localhost/internal/jobs/run"


class CaptureScheduler(Scheduler):
    """Records jobs instead of running them.

    ``enqueue`` returns the HTTP request a push queue would deliver, so a test
    can replay it through ``JobRunner.execute``.
    """

    def __init__(self, execute_url: str = DEFAULT_EXECUTE_URL) -> None:
        self.execute_url = execute_url
        self.jobs: list[Job[Any]] = []
        self.options: list[SchedulerOptions] = []

    async def enqueue(
        self, job: Job[Any], options: SchedulerOptions | None = None
    ) -> httpx.Request:
        self.jobs.append(job)
        self.options.append(options or SchedulerOptions())
        return httpx.Request(
            "POST",
            self.execute_url,
            headers={"Content-Type": "application/json"},
            content=job.to_json().encode(),
        )

    def jobs_of_type(self, job_class: type[Job[Any]]) -> list[Job[Any]]:
        return [job for job in self.jobs if isinstance(job, job_class)]

    def clear(self) -> None:
        self.jobs.clear()
        self.options.clear()
