"""
Dunning actions: retry, penultimate attempt and final attempt.

Each action issues its remote mutations and notifications for one failed
billing cycle. Ordering within a merchant's sequence comes from data: a
rebill is only scheduled once the current attempt's outcome is known.
"""

from datetime import UTC, datetime, timedelta

import structlog

from cadence.subscriptions.billing.jobs import RebillSubscriptionJob
from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.mutations import (
    cancel_contract,
    fail_contract,
    pause_contract,
    skip_billing_cycle,
)
from cadence.subscriptions.commerce.policy import OnFailure
from cadence.subscriptions.commerce.queries import get_contract_customer_id
from cadence.subscriptions.commerce.responses import BillingAttempt, Contract
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.jobs.schedulers.base import SchedulerOptions
from cadence.subscriptions.notifications.service import (
    CustomerTemplate,
    MerchantTemplate,
    NotificationService,
    TemplateInput,
    dunning_status,
)

logger = structlog.get_logger(__name__)


async def _customer_id(admin: CommerceAdminClient, contract: Contract) -> str:
    if contract.customer_id:
        return contract.customer_id
    return await get_contract_customer_id(admin, contract.id)


class RetryAction:
    """Schedule a rebill, optionally tell the customer, mark the contract failed."""

    def __init__(
        self,
        context: JobContext,
        admin: CommerceAdminClient,
        contract: Contract,
        billing_attempt: BillingAttempt,
        billing_cycle_index: int,
        days_between_retry_attempts: int,
        send_customer_email: bool = True,
        notifications: NotificationService | None = None,
    ) -> None:
        self.context = context
        self.admin = admin
        self.contract = contract
        self.billing_attempt = billing_attempt
        self.billing_cycle_index = billing_cycle_index
        self.days_between_retry_attempts = days_between_retry_attempts
        self.send_customer_email = send_customer_email
        self.notifications = notifications or NotificationService()
        self.log = logger.bind(merchant_key=admin.merchant_key, contract_id=contract.id)

    @property
    def scheduled_time(self) -> datetime:
        return datetime.now(UTC) + timedelta(days=self.days_between_retry_attempts)

    async def schedule_rebill(self) -> datetime:
        scheduled_time = self.scheduled_time
        job = RebillSubscriptionJob(
            self.admin.merchant_key,
            {
                "subscriptionContractId": self.contract.id,
                "originTime": self.billing_attempt.origin_time,
            },
        )
        await self.context.enqueue(job, SchedulerOptions(schedule_time=scheduled_time))
        self.log.info("dunning.rebill.scheduled", schedule_time=scheduled_time.isoformat())
        return scheduled_time

    async def notify_customer(self, template_input: TemplateInput) -> None:
        customer_id = await _customer_id(self.admin, self.contract)
        self.notifications.notify_customer(self.admin.merchant_key, customer_id, template_input)

    async def run(self) -> None:
        self.log.info("dunning.retry.started")

        await self.schedule_rebill()

        if self.send_customer_email:
            await self.notify_customer(
                TemplateInput(
                    subscription_contract_id=self.contract.id,
                    template=CustomerTemplate.PAYMENT_FAILURE_RETRY,
                    billing_cycle_index=self.billing_cycle_index,
                )
            )

        await fail_contract(self.admin, self.contract.id)
        self.log.info("dunning.retry.completed")


class PenultimateAttemptAction(RetryAction):
    """Last retry: schedule it, mark the contract failed, warn the customer."""

    def __init__(self, *args, on_failure: OnFailure, **kwargs) -> None:
        kwargs.setdefault("send_customer_email", True)
        super().__init__(*args, **kwargs)
        self.on_failure = on_failure

    @property
    def final_charge_date(self) -> str:
        final_charge = datetime.now(UTC) + timedelta(days=self.days_between_retry_attempts)
        return final_charge.date().isoformat()

    async def run(self) -> None:
        self.log.info("dunning.penultimate.started")

        await self.schedule_rebill()
        await fail_contract(self.admin, self.contract.id)
        await self.notify_customer(
            TemplateInput(
                subscription_contract_id=self.contract.id,
                template=CustomerTemplate.PAYMENT_FAILURE_LAST_ATTEMPT,
                billing_cycle_index=self.billing_cycle_index,
                dunning_status=dunning_status(self.on_failure),
                final_charge_date=self.final_charge_date,
            )
        )
        self.log.info("dunning.penultimate.completed")


class FinalAttemptAction:
    """Apply the merchant's final action once retries are exhausted."""

    def __init__(
        self,
        admin: CommerceAdminClient,
        contract: Contract,
        billing_cycle_index: int,
        on_failure: OnFailure,
        merchant_template: MerchantTemplate,
        send_customer_email: bool,
        notifications: NotificationService | None = None,
    ) -> None:
        self.admin = admin
        self.contract = contract
        self.billing_cycle_index = billing_cycle_index
        self.on_failure = on_failure
        self.merchant_template = merchant_template
        self.send_customer_email = send_customer_email
        self.notifications = notifications or NotificationService()
        self.log = logger.bind(
            merchant_key=admin.merchant_key, contract_id=contract.id, on_failure=on_failure.value
        )

    async def run(self) -> None:
        self.log.info("dunning.final.started")
        status = dunning_status(self.on_failure)

        if self.on_failure is OnFailure.CANCEL:
            await cancel_contract(self.admin, self.contract.id)
        elif self.on_failure is OnFailure.PAUSE:
            await pause_contract(self.admin, self.contract.id)

        if self.send_customer_email:
            customer_id = await _customer_id(self.admin, self.contract)
            self.notifications.notify_customer(
                self.admin.merchant_key,
                customer_id,
                TemplateInput(
                    subscription_contract_id=self.contract.id,
                    template=CustomerTemplate.PAYMENT_FAILURE,
                    billing_cycle_index=self.billing_cycle_index,
                    dunning_status=status,
                ),
            )

        # Inventory failures are reported to merchants through the digest instead
        if self.merchant_template is not MerchantTemplate.INVENTORY_FAILURE:
            self.notifications.notify_merchant(
                self.admin.merchant_key,
                TemplateInput(
                    subscription_contract_id=self.contract.id,
                    template=self.merchant_template,
                    dunning_status=status,
                ),
            )

        if self.on_failure is OnFailure.SKIP:
            await skip_billing_cycle(self.admin, self.contract.id, self.billing_cycle_index)

        self.log.info("dunning.final.completed")
