"""
Dunning state machine for failed payment collection.

States are derived, never stored: the decision follows from the billing
cycle's attempt history, the merchant's retry policy and the tracker.
The tracker's find-or-create ensures a duplicate failure webhook for the
same cycle and reason does not double-schedule retries: a completed tracker
ends the run, and an open one remembers how many attempts it has acted on.
"""

from enum import Enum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.policy import RetryPolicy
from cadence.subscriptions.commerce.responses import BillingAttempt, BillingCycle, Contract
from cadence.subscriptions.dunning.actions import (
    FinalAttemptAction,
    PenultimateAttemptAction,
    RetryAction,
)
from cadence.subscriptions.dunning.models import DunningTracker
from cadence.subscriptions.dunning.repository import (
    find_or_create_tracker,
    mark_completed,
    record_attempts_handled,
)
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.notifications.service import MerchantTemplate, NotificationService

logger = structlog.get_logger(__name__)

BILLING_CYCLE_BILLED_STATUS = "BILLED"
TERMINAL_CONTRACT_STATUSES = frozenset({"EXPIRED", "CANCELLED"})


class DunningOutcome(str, Enum):
    BILLING_ATTEMPT_NOT_READY = "BILLING_ATTEMPT_NOT_READY"
    BILLING_CYCLE_ALREADY_BILLED = "BILLING_CYCLE_ALREADY_BILLED"
    TRACKER_ALREADY_COMPLETED = "TRACKER_ALREADY_COMPLETED"
    ATTEMPT_ALREADY_HANDLED = "ATTEMPT_ALREADY_HANDLED"
    CONTRACT_IN_TERMINAL_STATUS = "CONTRACT_IN_TERMINAL_STATUS"
    FINAL_ATTEMPT_DUNNING = "FINAL_ATTEMPT_DUNNING"
    PENULTIMATE_ATTEMPT_DUNNING = "PENULTIMATE_ATTEMPT_DUNNING"
    RETRY_DUNNING = "RETRY_DUNNING"
    EXPECTED_DATE_IN_FUTURE = "EXPECTED_DATE_IN_FUTURE"
    INSUFFICIENT_INVENTORY = "INSUFFICIENT_INVENTORY"
    INVENTORY_ALLOCATIONS_NOT_FOUND = "INVENTORY_ALLOCATIONS_NOT_FOUND"


class RetryStateMachine:
    """Inputs and derived facts shared by the dunning and inventory services."""

    def __init__(
        self,
        context: JobContext,
        session: AsyncSession,
        admin: CommerceAdminClient,
        contract: Contract,
        billing_cycle: BillingCycle,
        policy: RetryPolicy,
        failure_reason: str,
        notifications: NotificationService | None = None,
    ) -> None:
        self.context = context
        self.session = session
        self.admin = admin
        self.contract = contract
        self.billing_cycle = billing_cycle
        self.policy = policy
        self.failure_reason = failure_reason
        self.notifications = notifications or NotificationService()
        self.log = logger.bind(
            service=type(self).__name__,
            merchant_key=admin.merchant_key,
            contract_id=contract.id,
            billing_cycle_index=billing_cycle.cycle_index,
            failure_reason=failure_reason,
        )

    @property
    def merchant_key(self) -> str:
        return self.admin.merchant_key

    @property
    def billing_attempt_not_ready(self) -> bool:
        return any(attempt.ready is False for attempt in self.billing_cycle.billing_attempts)

    @property
    def billing_cycle_already_billed(self) -> bool:
        return self.billing_cycle.status == BILLING_CYCLE_BILLED_STATUS

    @property
    def contract_in_terminal_status(self) -> bool:
        return self.contract.status in TERMINAL_CONTRACT_STATUSES

    @property
    def attempts_count(self) -> int:
        return self.billing_cycle.attempts_count

    @property
    def last_billing_attempt(self) -> BillingAttempt:
        attempt = self.billing_cycle.last_attempt
        if attempt is None:
            raise ValueError(f"Billing cycle {self.billing_cycle.cycle_index} has no attempts")
        return attempt

    async def tracker(self) -> DunningTracker:
        return await find_or_create_tracker(
            self.session,
            self.merchant_key,
            self.contract.id,
            self.billing_cycle.cycle_index,
            self.failure_reason,
        )

    def tracker_already_completed(self, tracker: DunningTracker) -> bool:
        if tracker.is_completed:
            self.log.info("dunning.tracker_already_completed", tracker_id=tracker.id)
            return True
        return False

    def attempt_already_handled(self, tracker: DunningTracker) -> bool:
        """A duplicate webhook for an attempt whose retry is already scheduled."""
        if tracker.attempts_handled >= self.attempts_count:
            self.log.info(
                "dunning.attempt_already_handled",
                tracker_id=tracker.id,
                attempts_handled=tracker.attempts_handled,
            )
            return True
        return False

    async def handled(self, tracker: DunningTracker) -> None:
        await record_attempts_handled(self.session, tracker, self.attempts_count)

    async def complete(self, tracker: DunningTracker, outcome: DunningOutcome) -> DunningOutcome:
        await mark_completed(self.session, tracker)
        self.log.info("dunning.completed", outcome=outcome.value)
        return outcome

    def final_attempt(self, merchant_template: MerchantTemplate, **kwargs) -> FinalAttemptAction:
        return FinalAttemptAction(
            self.admin,
            self.contract,
            self.billing_cycle.cycle_index,
            merchant_template=merchant_template,
            notifications=self.notifications,
            **kwargs,
        )


class DunningService(RetryStateMachine):
    """Retry or terminate a subscription after a failed payment."""

    @property
    def is_final_attempt(self) -> bool:
        return self.attempts_count >= self.policy.retry_attempts

    @property
    def is_penultimate_attempt(self) -> bool:
        return self.attempts_count == self.policy.retry_attempts - 1

    async def run(self) -> DunningOutcome:
        if self.billing_attempt_not_ready:
            self.log.info("dunning.billing_attempt_not_ready")
            return DunningOutcome.BILLING_ATTEMPT_NOT_READY

        tracker = await self.tracker()
        if self.tracker_already_completed(tracker):
            return DunningOutcome.TRACKER_ALREADY_COMPLETED

        if self.billing_cycle_already_billed:
            return await self.complete(tracker, DunningOutcome.BILLING_CYCLE_ALREADY_BILLED)

        if self.contract_in_terminal_status:
            return await self.complete(tracker, DunningOutcome.CONTRACT_IN_TERMINAL_STATUS)

        if self.attempt_already_handled(tracker):
            return DunningOutcome.ATTEMPT_ALREADY_HANDLED

        if self.is_final_attempt:
            await mark_completed(self.session, tracker)
            await self.final_attempt(
                MerchantTemplate.PAYMENT_FAILURE,
                on_failure=self.policy.on_failure,
                send_customer_email=True,
            ).run()
            return DunningOutcome.FINAL_ATTEMPT_DUNNING

        if self.is_penultimate_attempt:
            await PenultimateAttemptAction(
                self.context,
                self.admin,
                self.contract,
                self.last_billing_attempt,
                self.billing_cycle.cycle_index,
                self.policy.days_between_retry_attempts,
                on_failure=self.policy.on_failure,
                notifications=self.notifications,
            ).run()
            await self.handled(tracker)
            return DunningOutcome.PENULTIMATE_ATTEMPT_DUNNING

        await RetryAction(
            self.context,
            self.admin,
            self.contract,
            self.last_billing_attempt,
            self.billing_cycle.cycle_index,
            self.policy.days_between_retry_attempts,
            send_customer_email=True,
            notifications=self.notifications,
        ).run()
        await self.handled(tracker)
        return DunningOutcome.RETRY_DUNNING
