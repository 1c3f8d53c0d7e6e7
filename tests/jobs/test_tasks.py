"""
Celery task tests.

Tasks are called directly, so ``self.retry`` re-raises the job's error
instead of publishing a retry.
"""

from unittest.mock import MagicMock

import pytest

from cadence.subscriptions.billing.jobs import RecurringBillingChargeJob, TagSubscriptionOrderJob
from cadence.subscriptions.celery_app import BEAT_SCHEDULES, setup_periodic_tasks
from cadence.subscriptions.commerce.documents import TAGS_ADD_MUTATION
from cadence.subscriptions.exceptions import CommerceHttpError, UnregisteredJobError
from cadence.subscriptions.jobs import tasks
from cadence.subscriptions.jobs.factory import build_job_runner
from cadence.subscriptions.jobs.job import SYSTEM_MERCHANT_KEY
from cadence.subscriptions.jobs.schedulers import CaptureScheduler
from cadence.subscriptions.notifications.jobs import SendInventoryFailureEmailJob
from tests.fakes import DEFAULT_MERCHANT, FakeAdminFactory

pytestmark = pytest.mark.unit


def tag_envelope() -> dict:
    return TagSubscriptionOrderJob(DEFAULT_MERCHANT, {"orderId": "gid://shopify/Order/1"}).to_wire()


@pytest.fixture
def worker_scheduler():
    return CaptureScheduler()


@pytest.fixture
def worker_admin_factory():
    return FakeAdminFactory()


@pytest.fixture
def worker_runner(monkeypatch, test_settings, worker_scheduler, worker_admin_factory):
    runner = build_job_runner(
        test_settings, scheduler=worker_scheduler, admin_factory=worker_admin_factory
    )
    monkeypatch.setattr(tasks, "get_worker_runner", lambda: runner)
    return runner


class TestExecuteJobTask:
    def test_success(self, worker_runner):
        envelope = SendInventoryFailureEmailJob(DEFAULT_MERCHANT).to_wire()

        result = tasks.execute_job_task(envelope)

        assert result["outcome"] == "succeeded"
        assert result["job_name"] == "SendInventoryFailureEmailJob"

    def test_terminal_failure_is_acknowledged(self, worker_runner, worker_admin_factory):
        worker_admin_factory.uninstalled.add(DEFAULT_MERCHANT)
        envelope = tag_envelope()

        result = tasks.execute_job_task(envelope)

        assert result["outcome"] == "terminated"
        assert result["classification"] == "terminal"

    def test_retryable_failure_is_retried(self, worker_runner, worker_admin_factory):
        worker_admin_factory.client(DEFAULT_MERCHANT).respond(
            TAGS_ADD_MUTATION, CommerceHttpError("Service unavailable", status_code=503)
        )
        envelope = tag_envelope()

        with pytest.raises(CommerceHttpError):
            tasks.execute_job_task(envelope)

    @pytest.mark.parametrize(
        "envelope, error_code",
        [
            ({"jobName": "NoSuchJob", "parameters": {"merchantKey": "a"}}, "JOB_NOT_REGISTERED"),
            ({"jobName": "TagSubscriptionOrderJob"}, "INVALID_JOB_PAYLOAD"),
        ],
    )
    def test_malformed_envelope_is_rejected(self, worker_runner, envelope, error_code):
        result = tasks.execute_job_task(envelope)

        assert result["status"] == "rejected"
        assert result["error_code"] == error_code


class TestEnqueueJobTask:
    def test_enqueues_system_job(self, worker_runner, worker_scheduler):
        result = tasks.enqueue_job_task("RecurringBillingChargeJob")

        assert result == {"job_name": "RecurringBillingChargeJob", "handle": None}
        [job] = worker_scheduler.jobs_of_type(RecurringBillingChargeJob)
        assert job.merchant_key == SYSTEM_MERCHANT_KEY

    def test_unknown_job(self, worker_runner):
        with pytest.raises(UnregisteredJobError):
            tasks.enqueue_job_task("NoSuchJob")


class TestRetryCountdown:
    @pytest.mark.parametrize("retries, countdown", [(0, 30), (1, 60), (3, 240), (12, 3600)])
    def test_exponential_backoff_is_capped(self, retries, countdown):
        assert tasks.retry_countdown(retries) == countdown


class TestBeatSchedules:
    def test_registers_every_schedule(self):
        sender = MagicMock()

        setup_periodic_tasks(sender)

        names = [call.kwargs["name"] for call in sender.add_periodic_task.call_args_list]
        assert names == list(BEAT_SCHEDULES)
        signature = sender.add_periodic_task.call_args_list[0].args[1]
        assert signature.args == ("RecurringBillingChargeJob",)
