"""
Application factory tests.
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from cadence.subscriptions.exceptions import SchedulerError
from cadence.subscriptions.jobs.factory import build_job_runner
from cadence.subscriptions.jobs.schedulers import CaptureScheduler
from cadence.subscriptions.main import create_app, subscriptions_error_handler

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
class TestApplication:
    async def test_health(self, test_settings):
        app = create_app(job_runner=build_job_runner(test_settings, scheduler=CaptureScheduler()))
        transport = httpx.ASGITransport(app=app)

        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_runner_is_kept_on_state(self, test_settings):
        runner = build_job_runner(test_settings, scheduler=CaptureScheduler())

        app = create_app(job_runner=runner)

        assert app.state.job_runner is runner


class TestErrorHandler:
    def test_renders_domain_errors(self):
        response = subscriptions_error_handler(MagicMock(), SchedulerError("queue is down"))

        assert response.status_code == 503
        body = json.loads(response.body)
        assert body["error_code"] == "SCHEDULER_ERROR"
        assert body["message"] == "queue is down"

    def test_reraises_other_errors(self):
        with pytest.raises(ValueError):
            subscriptions_error_handler(MagicMock(), ValueError("boom"))
