"""
Job callback endpoint tests.
"""

import httpx
import pytest
import pytest_asyncio

from cadence.subscriptions.billing.jobs import TagSubscriptionOrderJob
from cadence.subscriptions.commerce.documents import TAGS_ADD_MUTATION
from cadence.subscriptions.exceptions import CommerceHttpError
from cadence.subscriptions.main import create_app
from cadence.subscriptions.notifications.jobs import SendInventoryFailureEmailJob
from tests.fakes import DEFAULT_MERCHANT

pytestmark = pytest.mark.unit

EXECUTE_PATH = "/internal/jobs/run"


def tag_body() -> str:
    return TagSubscriptionOrderJob(DEFAULT_MERCHANT, {"orderId": "gid://shopify/Order/1"}).to_json()


@pytest_asyncio.fixture
async def client(runner):
    app = create_app(job_runner=runner)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
class TestRunJobRoute:
    async def test_success(self, client):
        response = await client.post(
            EXECUTE_PATH, content=SendInventoryFailureEmailJob(DEFAULT_MERCHANT).to_json()
        )

        assert response.status_code == 200
        assert response.json() == {"status": "success", "outcome": "succeeded"}

    async def test_terminal_failure_is_acknowledged(self, client, admin_factory):
        admin_factory.uninstalled.add(DEFAULT_MERCHANT)

        response = await client.post(EXECUTE_PATH, content=tag_body())

        assert response.status_code == 200
        assert response.json() == {"status": "success", "outcome": "terminated"}

    async def test_retryable_failure_asks_for_redelivery(self, client, admin):
        admin.respond(TAGS_ADD_MUTATION, CommerceHttpError("Service unavailable", status_code=503))

        response = await client.post(EXECUTE_PATH, content=tag_body())

        assert response.status_code == 500
        assert response.json() == {"status": "failure", "error": "Service unavailable"}

    async def test_unregistered_job(self, client):
        response = await client.post(
            EXECUTE_PATH, json={"jobName": "NoSuchJob", "parameters": {"merchantKey": "a"}}
        )

        assert response.status_code == 400
        assert response.json() == {
            "status": "failure",
            "error": "Failed to find registered job NoSuchJob",
            "error_code": "JOB_NOT_REGISTERED",
        }

    async def test_invalid_json(self, client):
        response = await client.post(EXECUTE_PATH, content=b"{not json")

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_JOB_PAYLOAD"

    async def test_invalid_payload(self, client):
        response = await client.post(
            EXECUTE_PATH,
            json={
                "jobName": "TagSubscriptionOrderJob",
                "parameters": {"merchantKey": DEFAULT_MERCHANT, "payload": {}},
            },
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_JOB_PAYLOAD"
