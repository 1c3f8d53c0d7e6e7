"""Retry state machine for billing attempts that failed on inventory."""

from datetime import UTC, datetime

from cadence.subscriptions.commerce.policy import NotificationFrequency
from cadence.subscriptions.dunning.actions import RetryAction
from cadence.subscriptions.dunning.repository import mark_completed
from cadence.subscriptions.dunning.service import DunningOutcome, RetryStateMachine
from cadence.subscriptions.notifications.jobs import SendInventoryFailureEmailJob
from cadence.subscriptions.notifications.service import MerchantTemplate


class InventoryService(RetryStateMachine):
    """Retry out-of-stock charges on the inventory schedule, quietly for customers.

    ``run`` returns the upper-cased failure reason once the retry or the
    final action has been issued.
    """

    @property
    def expected_date_in_future(self) -> bool:
        return self.billing_cycle.billing_attempt_expected_date > datetime.now(UTC)

    @property
    def is_final_attempt(self) -> bool:
        return self.attempts_count >= self.policy.inventory_retry_attempts

    @property
    def outcome(self) -> DunningOutcome:
        return DunningOutcome(self.failure_reason.upper())

    async def notify_merchant_immediately(self) -> None:
        if self.policy.inventory_notification_frequency is not NotificationFrequency.IMMEDIATELY:
            return
        await self.context.enqueue(SendInventoryFailureEmailJob(self.merchant_key))

    async def run(self) -> DunningOutcome:
        if self.billing_attempt_not_ready:
            self.log.info("inventory.billing_attempt_not_ready")
            return DunningOutcome.BILLING_ATTEMPT_NOT_READY

        tracker = await self.tracker()
        if self.tracker_already_completed(tracker):
            return DunningOutcome.TRACKER_ALREADY_COMPLETED

        if self.expected_date_in_future:
            return await self.complete(tracker, DunningOutcome.EXPECTED_DATE_IN_FUTURE)

        if self.billing_cycle_already_billed:
            return await self.complete(tracker, DunningOutcome.BILLING_CYCLE_ALREADY_BILLED)

        if self.contract_in_terminal_status:
            return await self.complete(tracker, DunningOutcome.CONTRACT_IN_TERMINAL_STATUS)

        if self.attempt_already_handled(tracker):
            return DunningOutcome.ATTEMPT_ALREADY_HANDLED

        await self.notify_merchant_immediately()

        if self.is_final_attempt:
            await mark_completed(self.session, tracker)
            await self.final_attempt(
                MerchantTemplate.INVENTORY_FAILURE,
                on_failure=self.policy.inventory_on_failure,
                send_customer_email=False,
            ).run()
            return self.outcome

        await RetryAction(
            self.context,
            self.admin,
            self.contract,
            self.last_billing_attempt,
            self.billing_cycle.cycle_index,
            self.policy.inventory_days_between_retry_attempts,
            send_customer_email=False,
            notifications=self.notifications,
        ).run()
        await self.handled(tracker)
        return self.outcome

