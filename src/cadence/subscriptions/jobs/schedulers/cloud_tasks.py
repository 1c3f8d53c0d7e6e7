"""
Durable push-queue scheduler backed by Google Cloud Tasks.

Each enqueue creates a uniquely named HTTP task that POSTs the job envelope
back to the runner's execute endpoint with an OIDC token.
"""

from datetime import timedelta
from typing import Any
from uuid import uuid4

import structlog
from google.api_core.exceptions import GoogleAPICallError
from google.cloud import tasks_v2
from google.protobuf import duration_pb2, timestamp_pb2

from cadence.subscriptions.exceptions import SchedulerError
from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.jobs.schedulers.base import Scheduler, SchedulerOptions
from cadence.subscriptions.settings import Settings

logger = structlog.get_logger(__name__)

MAX_DISPATCH_DEADLINE = timedelta(seconds=1800)


class CloudTasksScheduler(Scheduler):
    """Enqueues jobs as Cloud Tasks HTTP tasks."""

    def __init__(
        self,
        config: Settings.CloudTasksSettings,
        client: tasks_v2.CloudTasksAsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> tasks_v2.CloudTasksAsyncClient:
        """Get or create the Cloud Tasks client."""
        if self._client is None:
            self._client = tasks_v2.CloudTasksAsyncClient()
        return self._client

    @property
    def max_dispatch_deadline(self) -> timedelta:
        return min(
            timedelta(seconds=self.config.max_dispatch_deadline_seconds), MAX_DISPATCH_DEADLINE
        )

    def queue_name(self, job: Job[Any]) -> str:
        return f"{self.config.queue_prefix}-{job.queue.value}"

    def queue_path(self, job: Job[Any]) -> str:
        return tasks_v2.CloudTasksClient.queue_path(
            self.config.project_id, self.config.location, self.queue_name(job)
        )

    def build_task(self, job: Job[Any], options: SchedulerOptions) -> tasks_v2.Task:
        """Build the HTTP task for ``job``.

        Task names must never repeat: the queue treats a reused name as a
        duplicate and silently drops it.
        """
        task_id = f"{job.name}-{uuid4()}"

        task = tasks_v2.Task(
            name=tasks_v2.CloudTasksClient.task_path(
                self.config.project_id, self.config.location, self.queue_name(job), task_id
            ),
            http_request=tasks_v2.HttpRequest(
                http_method=tasks_v2.HttpMethod.POST,
                url=self.config.callback_url,
                headers={"Content-Type": "application/json"},
                # bytes fields are base64 encoded by the transport
                body=job.to_json().encode(),
                oidc_token=tasks_v2.OidcToken(
                    service_account_email=self.config.service_account_email,
                    audience=self.config.audience or self.config.callback_url,
                ),
            ),
        )

        if options.schedule_time is not None:
            timestamp = timestamp_pb2.Timestamp()
            timestamp.FromDatetime(options.schedule_time)
            task.schedule_time = timestamp

        if options.dispatch_deadline is not None:
            deadline = min(options.dispatch_deadline, self.max_dispatch_deadline)
            task.dispatch_deadline = duration_pb2.Duration(seconds=int(deadline.total_seconds()))

        return task

    async def enqueue(self, job: Job[Any], options: SchedulerOptions | None = None) -> str:
        options = options or SchedulerOptions()
        parent = self.queue_path(job)
        task = self.build_task(job, options)

        try:
            response = await self._get_client().create_task(parent=parent, task=task)
        except GoogleAPICallError as e:
            logger.error(
                "scheduler.cloud_tasks.enqueue_failed",
                job_name=job.name,
                merchant_key=job.merchant_key,
                queue=parent,
                error=str(e),
            )
            raise SchedulerError(
                f"Failed to enqueue {job.name} on {parent}", context={"error": str(e)}
            ) from e

        logger.info(
            "scheduler.cloud_tasks.enqueued",
            job_name=job.name,
            merchant_key=job.merchant_key,
            task_name=response.name,
        )
        return response.name
