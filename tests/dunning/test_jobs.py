"""
Dunning start and stop job tests.

These run the jobs through ``JobRunner.execute`` with wire envelopes, the
way a queue callback would.
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import select

from cadence.subscriptions.billing.jobs import RebillSubscriptionJob
from cadence.subscriptions.commerce.documents import (
    SETTINGS_METAOBJECT_QUERY,
    SUBSCRIPTION_BILLING_ATTEMPT_QUERY,
    SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION,
    SUBSCRIPTION_CONTRACT_FAIL_MUTATION,
    SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY,
)
from cadence.subscriptions.dunning.jobs import DunningStartJob, DunningStopJob
from cadence.subscriptions.dunning.models import DunningTracker
from cadence.subscriptions.dunning.repository import find_or_create_tracker
from cadence.subscriptions.exceptions import PolicyNotFoundError
from cadence.subscriptions.jobs.types import JobOutcome
from tests.fakes import (
    BILLING_ATTEMPT_ID,
    CONTRACT_ID,
    DEFAULT_MERCHANT,
    billing_attempt_body,
    contract_mutation_body,
    contract_with_cycle_body,
    missing_policy_body,
    policy_body,
)

pytestmark = pytest.mark.unit

ORIGIN_TIME = datetime(2023, 7, 10, 14, tzinfo=UTC)


def start_envelope(error_code: str = "CARD_DECLINED") -> dict:
    return DunningStartJob(
        DEFAULT_MERCHANT,
        {"admin_graphql_api_id": BILLING_ATTEMPT_ID, "error_code": error_code},
    ).to_wire()


def stop_envelope() -> dict:
    return DunningStopJob(
        DEFAULT_MERCHANT,
        {
            "admin_graphql_api_id": BILLING_ATTEMPT_ID,
            "admin_graphql_api_subscription_contract_id": CONTRACT_ID,
        },
    ).to_wire()


@pytest.fixture
def failed_attempt(admin):
    """Admin API state for a contract whose first charge just failed."""
    admin.respond(SETTINGS_METAOBJECT_QUERY, policy_body(retryAttempts=3, daysBetweenRetryAttempts=7))
    admin.respond(SUBSCRIPTION_BILLING_ATTEMPT_QUERY, billing_attempt_body(ORIGIN_TIME))
    admin.respond(
        SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY,
        contract_with_cycle_body(attempts=1, cycle_index=3, origin_time=ORIGIN_TIME),
    )
    admin.respond(SUBSCRIPTION_CONTRACT_FAIL_MUTATION, contract_mutation_body("subscriptionContractFail"))
    return admin


@pytest.mark.asyncio
class TestDunningStartJob:
    async def test_payment_failure_starts_dunning(self, runner, failed_attempt, scheduler, db_session):
        result = await runner.execute(start_envelope())

        assert result.outcome is JobOutcome.SUCCEEDED
        assert len(scheduler.jobs_of_type(RebillSubscriptionJob)) == 1

        [variables] = failed_attempt.calls_to(SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY)
        assert variables["contractId"] == CONTRACT_ID
        assert variables["date"] == ORIGIN_TIME.isoformat()

        tracker = (await db_session.execute(select(DunningTracker))).scalar_one()
        assert tracker.failure_reason == "CARD_DECLINED"
        assert tracker.billing_cycle_index == 3

    async def test_inventory_failure_routes_to_inventory_service(
        self, runner, failed_attempt, scheduler, db_session
    ):
        result = await runner.execute(start_envelope("INSUFFICIENT_INVENTORY"))

        assert result.outcome is JobOutcome.SUCCEEDED
        tracker = (await db_session.execute(select(DunningTracker))).scalar_one()
        assert tracker.failure_reason == "INSUFFICIENT_INVENTORY"
        [rebill] = scheduler.jobs_of_type(RebillSubscriptionJob)
        assert rebill.payload.origin_time == ORIGIN_TIME

    async def test_missing_policy_is_retryable(self, runner, admin):
        admin.respond(SETTINGS_METAOBJECT_QUERY, missing_policy_body())

        with pytest.raises(PolicyNotFoundError):
            await runner.execute(start_envelope())

        assert admin.calls_to(SUBSCRIPTION_BILLING_ATTEMPT_QUERY) == []

    async def test_uninstalled_merchant_is_drained(self, runner, admin_factory):
        admin_factory.uninstalled.add(DEFAULT_MERCHANT)

        result = await runner.execute(start_envelope())

        assert result.outcome is JobOutcome.TERMINATED


@pytest.mark.asyncio
class TestDunningStopJob:
    @pytest.fixture
    def succeeded_attempt(self, admin):
        admin.respond(SUBSCRIPTION_BILLING_ATTEMPT_QUERY, billing_attempt_body(ORIGIN_TIME, error_code=None))
        admin.respond(
            SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY,
            contract_with_cycle_body(attempts=2, cycle_index=3, cycle_status="BILLED", status="FAILED"),
        )
        admin.respond(
            SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION,
            contract_mutation_body("subscriptionContractActivate"),
        )
        return admin

    async def test_completes_tracker_and_reactivates(self, runner, succeeded_attempt, session_factory):
        async with session_factory() as session:
            await find_or_create_tracker(session, DEFAULT_MERCHANT, CONTRACT_ID, 3, "CARD_DECLINED")
            await session.commit()

        result = await runner.execute(stop_envelope())

        assert result.outcome is JobOutcome.SUCCEEDED
        assert succeeded_attempt.calls_to(SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION) == [
            {"subscriptionContractId": CONTRACT_ID}
        ]
        async with session_factory() as session:
            tracker = (await session.execute(select(DunningTracker))).scalar_one()
            assert tracker.completed_at is not None

    async def test_without_tracker_does_nothing(self, runner, succeeded_attempt):
        result = await runner.execute(stop_envelope())

        assert result.outcome is JobOutcome.SUCCEEDED
        assert succeeded_attempt.calls_to(SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION) == []


class TestDunningStartPayload:
    @pytest.mark.parametrize(
        "error_code, expected",
        [
            ("insufficient_inventory", True),
            ("INVENTORY_ALLOCATIONS_NOT_FOUND", True),
            ("CARD_DECLINED", False),
        ],
    )
    def test_detects_inventory_error_codes(self, error_code, expected):
        job = DunningStartJob(
            DEFAULT_MERCHANT, {"admin_graphql_api_id": BILLING_ATTEMPT_ID, "error_code": error_code}
        )
        assert job.is_inventory_failure is expected
