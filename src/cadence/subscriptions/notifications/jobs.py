"""
Notification jobs.

Single-recipient jobs run on the webhooks queue. The inventory digests walk
every active merchant and enqueue one ``SendInventoryFailureEmailJob`` for
each merchant whose policy asks for that frequency.
"""

import asyncio
from collections.abc import Sequence
from typing import ClassVar

from pydantic import Field

from cadence.subscriptions.billing.models import MerchantBillingSchedule
from cadence.subscriptions.billing.repository import active_schedules, paginate
from cadence.subscriptions.commerce.policy import NotificationFrequency, load_retry_policy
from cadence.subscriptions.commerce.queries import get_contract_customer_id
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.jobs.job import EmptyPayload, Job, JobPayload
from cadence.subscriptions.jobs.types import JobQueue, JobType
from cadence.subscriptions.notifications.service import (
    CustomerTemplate,
    MerchantTemplate,
    NotificationService,
    TemplateInput,
)


class CustomerEmailPayload(JobPayload):
    admin_graphql_api_id: str = Field(..., min_length=1)
    email_template: CustomerTemplate = Field(..., alias="emailTemplate")
    admin_graphql_api_customer_id: str | None = None
    cycle_index: int | None = None


class MerchantEmailPayload(JobPayload):
    admin_graphql_api_id: str = Field(..., min_length=1)


class CustomerSendEmailJob(Job[CustomerEmailPayload]):
    """Send a contract lifecycle notice to the subscriber."""

    job_type = JobType.CUSTOMER_SEND_EMAIL
    queue = JobQueue.WEBHOOKS
    payload_model = CustomerEmailPayload

    async def perform(self, context: JobContext) -> None:
        contract_id = self.payload.admin_graphql_api_id
        customer_id = self.payload.admin_graphql_api_customer_id
        if not customer_id:
            async with context.admin(self.merchant_key) as admin:
                customer_id = await get_contract_customer_id(admin, contract_id)

        NotificationService().notify_customer(
            self.merchant_key,
            customer_id,
            TemplateInput(
                subscription_contract_id=contract_id,
                template=self.payload.email_template,
                billing_cycle_index=self.payload.cycle_index,
            ),
        )


class MerchantSendEmailJob(Job[MerchantEmailPayload]):
    """Tell the merchant a subscriber cancelled."""

    job_type = JobType.MERCHANT_SEND_EMAIL
    queue = JobQueue.WEBHOOKS
    payload_model = MerchantEmailPayload

    async def perform(self, context: JobContext) -> None:
        NotificationService().notify_merchant(
            self.merchant_key,
            TemplateInput(
                subscription_contract_id=self.payload.admin_graphql_api_id,
                template=MerchantTemplate.SUBSCRIPTION_CANCELED,
            ),
        )


class SendInventoryFailureEmailJob(Job[EmptyPayload]):
    """Send the merchant their inventory failure report."""

    job_type = JobType.SEND_INVENTORY_FAILURE_EMAIL
    queue = JobQueue.WEBHOOKS

    async def perform(self, context: JobContext) -> None:
        NotificationService().notify_inventory_failures(self.merchant_key)


class InventoryFailureDigestJob(Job[EmptyPayload]):
    """Enqueue inventory reports for merchants on ``frequency``."""

    frequency: ClassVar[NotificationFrequency]

    async def schedule_merchant(self, context: JobContext, merchant_key: str) -> bool:
        async with context.admin(merchant_key) as admin:
            policy = await load_retry_policy(admin)

        if policy is None:
            self.logger.error("notifications.digest.policy_missing", target_merchant=merchant_key)
            return False
        if policy.inventory_notification_frequency is not self.frequency:
            return False

        await context.enqueue(SendInventoryFailureEmailJob(merchant_key))
        return True

    async def perform(self, context: JobContext) -> None:
        log = self.logger.bind(frequency=self.frequency.value)

        async def schedule_page(page: Sequence[MerchantBillingSchedule]) -> None:
            results = await asyncio.gather(
                *(self.schedule_merchant(context, schedule.merchant_key) for schedule in page),
                return_exceptions=True,
            )
            for schedule, result in zip(page, results, strict=True):
                if isinstance(result, Exception):
                    log.error(
                        "notifications.digest.enqueue_failed",
                        target_merchant=schedule.merchant_key,
                        error=str(result),
                        error_type=type(result).__name__,
                    )
            log.info(
                "notifications.digest.batch_scheduled",
                success_count=sum(1 for result in results if result is True),
                batch_count=len(results),
            )

        async with context.session() as session:
            await paginate(
                session,
                schedule_page,
                where=active_schedules(),
                take=context.settings.billing.page_size,
            )


class SendWeeklyInventoryFailureEmailJob(InventoryFailureDigestJob):
    job_type = JobType.SEND_WEEKLY_INVENTORY_FAILURE_EMAIL
    frequency = NotificationFrequency.WEEKLY


class SendMonthlyInventoryFailureEmailJob(InventoryFailureDigestJob):
    job_type = JobType.SEND_MONTHLY_INVENTORY_FAILURE_EMAIL
    frequency = NotificationFrequency.MONTHLY


__all__ = [
    "CustomerSendEmailJob",
    "MerchantSendEmailJob",
    "SendInventoryFailureEmailJob",
    "SendMonthlyInventoryFailureEmailJob",
    "SendWeeklyInventoryFailureEmailJob",
]
