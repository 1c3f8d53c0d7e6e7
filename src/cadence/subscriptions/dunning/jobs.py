"""Webhook-driven jobs that start and stop dunning for a billing cycle."""

from pydantic import Field

from cadence.subscriptions.commerce.mutations import activate_contract
from cadence.subscriptions.commerce.policy import load_retry_policy
from cadence.subscriptions.commerce.queries import (
    find_billing_attempt,
    find_contract_with_billing_cycle,
)
from cadence.subscriptions.dunning.inventory import InventoryService
from cadence.subscriptions.dunning.repository import find_tracker, mark_completed
from cadence.subscriptions.dunning.service import DunningService, RetryStateMachine
from cadence.subscriptions.exceptions import PolicyNotFoundError
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.jobs.job import Job, JobPayload
from cadence.subscriptions.jobs.types import JobQueue, JobType

INVENTORY_ERROR_CODES = frozenset({"insufficient_inventory", "inventory_allocations_not_found"})


class BillingAttemptFailurePayload(JobPayload):
    admin_graphql_api_id: str = Field(..., min_length=1)
    error_code: str = Field(..., min_length=1)


class BillingAttemptSuccessPayload(JobPayload):
    admin_graphql_api_id: str = Field(..., min_length=1)
    admin_graphql_api_subscription_contract_id: str = Field(..., min_length=1)


class DunningStartJob(Job[BillingAttemptFailurePayload]):
    """Route a failed billing attempt to the dunning or inventory retry service."""

    job_type = JobType.DUNNING_START
    queue = JobQueue.WEBHOOKS
    payload_model = BillingAttemptFailurePayload

    @property
    def is_inventory_failure(self) -> bool:
        return self.payload.error_code.lower() in INVENTORY_ERROR_CODES

    async def perform(self, context: JobContext) -> None:
        service_class: type[RetryStateMachine] = (
            InventoryService if self.is_inventory_failure else DunningService
        )

        async with context.admin(self.merchant_key) as admin:
            policy = await load_retry_policy(admin)
            if policy is None:
                raise PolicyNotFoundError(self.merchant_key)

            billing_attempt = await find_billing_attempt(admin, self.payload.admin_graphql_api_id)
            contract, billing_cycle = await find_contract_with_billing_cycle(
                admin, billing_attempt.contract_id, billing_attempt.origin_time
            )

            async with context.session() as session:
                service = service_class(
                    context,
                    session,
                    admin,
                    contract,
                    billing_cycle,
                    policy,
                    self.payload.error_code,
                )
                outcome = await service.run()

        self.logger.info(
            "dunning.start.completed",
            service=service_class.__name__,
            outcome=outcome.value,
            contract_id=contract.id,
        )


class DunningStopJob(Job[BillingAttemptSuccessPayload]):
    """Close the cycle's tracker and reactivate the contract after a successful charge."""

    job_type = JobType.DUNNING_STOP
    queue = JobQueue.WEBHOOKS
    payload_model = BillingAttemptSuccessPayload

    async def perform(self, context: JobContext) -> None:
        contract_id = self.payload.admin_graphql_api_subscription_contract_id
        log = self.logger.bind(contract_id=contract_id)

        async with context.admin(self.merchant_key) as admin:
            billing_attempt = await find_billing_attempt(admin, self.payload.admin_graphql_api_id)
            contract, billing_cycle = await find_contract_with_billing_cycle(
                admin, contract_id, billing_attempt.origin_time
            )

            async with context.session() as session:
                tracker = await find_tracker(
                    session, self.merchant_key, contract.id, billing_cycle.cycle_index
                )
                if tracker is None:
                    log.info("dunning.stop.no_tracker")
                    return
                await mark_completed(session, tracker)

            log.info("dunning.stop.tracker_completed", tracker_id=tracker.id)
            await activate_contract(admin, contract_id)

        log.info("dunning.stop.contract_reactivated")


__all__ = ["DunningStartJob", "DunningStopJob", "INVENTORY_ERROR_CODES"]
