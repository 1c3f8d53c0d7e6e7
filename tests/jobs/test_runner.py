"""
Job runner registry and dispatch tests.
"""

import json

import httpx
import pytest

from cadence.subscriptions.exceptions import (
    CommerceApiError,
    InvalidJobPayloadError,
    UnregisteredJobError,
)
from cadence.subscriptions.jobs.envelope import JobEnvelope
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.jobs.schedulers import CaptureScheduler, SchedulerOptions
from cadence.subscriptions.jobs.types import JobOutcome, JobType
from tests.jobs.sample_jobs import SampleJob, performed

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _clear_performed():
    performed.clear()
    yield
    performed.clear()


@pytest.fixture
def capture():
    return CaptureScheduler()


@pytest.fixture
def sample_runner(capture, test_settings):
    return JobRunner(capture, settings=test_settings).register(SampleJob)


class TestRegistry:
    def test_register_binds_scheduler(self, sample_runner, capture):
        assert capture.runner is sample_runner
        assert sample_runner.registered_job_types == {JobType.RECURRING_BILLING_CHARGE}

    def test_missing_job_types(self, sample_runner):
        missing = sample_runner.missing_job_types()

        assert JobType.RECURRING_BILLING_CHARGE not in missing
        assert len(missing) == len(JobType) - 1

    def test_last_registration_wins(self, sample_runner):
        class ReplacementJob(SampleJob):
            pass

        sample_runner.register(ReplacementJob)

        assert sample_runner.job_class("RecurringBillingChargeJob") is ReplacementJob

    @pytest.mark.parametrize("job_name", ["NoSuchJob", "DunningStartJob"])
    def test_unregistered_job(self, sample_runner, job_name):
        with pytest.raises(UnregisteredJobError) as exc_info:
            sample_runner.job_class(job_name)

        assert exc_info.value.message == f"Failed to find registered job {job_name}"
        assert exc_info.value.status_code == 400

    def test_build_job_does_not_run(self, sample_runner):
        job = sample_runner.build_job(SampleJob("shop-1.example.com").to_wire())

        assert isinstance(job, SampleJob)
        assert performed == []


@pytest.mark.asyncio
class TestExecute:
    @pytest.mark.parametrize(
        "encode", [JobEnvelope.parse, json.dumps, lambda wire: json.dumps(wire).encode()]
    )
    async def test_accepts_every_request_shape(self, sample_runner, encode):
        job = SampleJob("shop-1.example.com", {"note": "shape"})

        result = await sample_runner.execute(encode(job.to_wire()))

        assert result.outcome is JobOutcome.SUCCEEDED
        assert performed == [job]

    async def test_replays_captured_request(self, sample_runner, capture):
        job = SampleJob("shop-1.example.com", {"note": "replayed"})

        request = await sample_runner.enqueue(job)

        assert isinstance(request, httpx.Request)
        assert performed == []
        assert capture.jobs == [job]

        result = await sample_runner.execute(request)

        assert result.outcome is JobOutcome.SUCCEEDED
        assert performed == [job]

    async def test_terminal_error_is_drained(self, sample_runner):
        job = SampleJob("shop-1.example.com", {"error": "terminal"})

        result = await sample_runner.execute(job.to_wire())

        assert result.outcome is JobOutcome.TERMINATED

    async def test_retryable_error_is_raised(self, sample_runner):
        with pytest.raises(CommerceApiError):
            await sample_runner.execute(
                SampleJob("shop-1.example.com", {"error": "retryable"}).to_wire()
            )

    async def test_invalid_json(self, sample_runner):
        with pytest.raises(InvalidJobPayloadError, match="not valid JSON"):
            await sample_runner.execute(b"{oops")

    async def test_unknown_job(self, sample_runner):
        with pytest.raises(UnregisteredJobError):
            await sample_runner.execute({"jobName": "NoSuchJob", "parameters": {"merchantKey": "a"}})

    async def test_enqueue_passes_options(self, sample_runner, capture):
        options = SchedulerOptions()

        await sample_runner.enqueue(SampleJob("shop-1.example.com"), options)

        assert capture.options == [options]
