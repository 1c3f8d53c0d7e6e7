"""
Recurring billing jobs.

The hourly trigger fans out to one ``ChargeBillingCyclesJob`` per merchant
whose local billing hour is the current UTC hour. Failed charges come back
through webhooks and are retried with ``RebillSubscriptionJob``.
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime

from pydantic import Field

from cadence.subscriptions.billing.models import MerchantBillingSchedule
from cadence.subscriptions.billing.repository import active_schedules, paginate
from cadence.subscriptions.billing.schedule import BillingScheduleCalculator, start_of_hour
from cadence.subscriptions.commerce.mutations import (
    add_tags,
    bulk_charge_billing_cycles,
    charge_billing_cycle,
)
from cadence.subscriptions.commerce.queries import get_contract_last_payment_status
from cadence.subscriptions.exceptions import JobFailedError, UserErrorsError
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.jobs.job import EmptyPayload, Job, JobPayload
from cadence.subscriptions.jobs.types import JobQueue, JobType

RECURRING_ORDER_TAGS = ("Subscription", "Subscription Recurring Order")
FIRST_ORDER_TAGS = ("Subscription", "Subscription First Order")

PAYMENT_SUCCEEDED = "SUCCEEDED"


class ScheduleMerchantsPayload(JobPayload):
    target_date: datetime = Field(..., alias="targetDate")


class ChargeBillingCyclesPayload(JobPayload):
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")


class RebillSubscriptionPayload(JobPayload):
    subscription_contract_id: str = Field(..., alias="subscriptionContractId", min_length=1)
    origin_time: datetime = Field(..., alias="originTime")


class TagSubscriptionOrderPayload(JobPayload):
    order_id: str = Field(..., alias="orderId", min_length=1)
    tags: list[str] = Field(default_factory=lambda: list(RECURRING_ORDER_TAGS), min_length=1)


class RecurringBillingChargeJob(Job[EmptyPayload]):
    """Hourly trigger. Schedules the merchant scan for the current UTC hour."""

    job_type = JobType.RECURRING_BILLING_CHARGE
    queue = JobQueue.BILLING

    async def perform(self, context: JobContext) -> None:
        target_date = start_of_hour(datetime.now(UTC))
        self.logger.info("billing.recurring_charge.scheduling", target_date=target_date.isoformat())
        await context.enqueue(
            ScheduleMerchantsToChargeJob(self.merchant_key, {"targetDate": target_date})
        )


class ScheduleMerchantsToChargeJob(Job[ScheduleMerchantsPayload]):
    """Enqueue a bulk charge for every merchant billable at ``targetDate``."""

    job_type = JobType.SCHEDULE_MERCHANTS_TO_CHARGE
    queue = JobQueue.BILLING
    payload_model = ScheduleMerchantsPayload

    async def perform(self, context: JobContext) -> None:
        target_date = self.payload.target_date
        log = self.logger.bind(target_date=target_date.isoformat())
        scheduled = 0

        async def schedule_page(page: Sequence[MerchantBillingSchedule]) -> None:
            nonlocal scheduled
            log.debug("billing.schedule_merchants.batch", size=len(page))

            billable = [
                calculator
                for calculator in (
                    BillingScheduleCalculator(schedule, target_date) for schedule in page
                )
                if calculator.is_billable()
            ]
            log.info("billing.schedule_merchants.billable", count=len(billable))

            await asyncio.gather(
                *(
                    context.enqueue(
                        ChargeBillingCyclesJob(
                            calculator.schedule.merchant_key,
                            {
                                "startDate": calculator.billing_start_time_utc,
                                "endDate": calculator.billing_end_time_utc,
                            },
                        )
                    )
                    for calculator in billable
                )
            )
            scheduled += len(billable)

        async with context.session() as session:
            pages = await paginate(
                session,
                schedule_page,
                where=active_schedules(),
                take=context.settings.billing.page_size,
            )

        log.info(
            "billing.schedule_merchants.completed",
            pages=pages,
            scheduled=scheduled,
        )


class ChargeBillingCyclesJob(Job[ChargeBillingCyclesPayload]):
    """Bulk charge the merchant's unbilled cycles expected in the window."""

    job_type = JobType.CHARGE_BILLING_CYCLES
    queue = JobQueue.BILLING
    payload_model = ChargeBillingCyclesPayload

    async def perform(self, context: JobContext) -> None:
        async with context.admin(self.merchant_key) as admin:
            job_id = await bulk_charge_billing_cycles(
                admin, self.payload.start_date, self.payload.end_date
            )
        self.logger.info(
            "billing.charge_billing_cycles.started",
            bulk_job_id=job_id,
            start_date=self.payload.start_date.isoformat(),
            end_date=self.payload.end_date.isoformat(),
        )


class RebillSubscriptionJob(Job[RebillSubscriptionPayload]):
    """Charge a failed billing cycle again, unless the contract already paid."""

    job_type = JobType.REBILL_SUBSCRIPTION
    queue = JobQueue.REBILLING
    payload_model = RebillSubscriptionPayload

    async def perform(self, context: JobContext) -> None:
        contract_id = self.payload.subscription_contract_id
        log = self.logger.bind(contract_id=contract_id)

        async with context.admin(self.merchant_key) as admin:
            last_payment_status = await get_contract_last_payment_status(admin, contract_id)
            if last_payment_status == PAYMENT_SUCCEEDED:
                log.info("billing.rebill.skipped", reason="last payment succeeded")
                return

            try:
                benign = await charge_billing_cycle(admin, contract_id, self.payload.origin_time)
            except UserErrorsError as e:
                raise JobFailedError(
                    f"Failed to process {self.name}",
                    context={"contract_id": contract_id, "user_errors": e.user_errors},
                ) from e

        log.info("billing.rebill.charged", benign_user_errors=len(benign))


class TagSubscriptionOrderJob(Job[TagSubscriptionOrderPayload]):
    """Tag a subscription order so merchants can filter it."""

    job_type = JobType.TAG_SUBSCRIPTION_ORDER
    queue = JobQueue.WEBHOOKS
    payload_model = TagSubscriptionOrderPayload

    async def perform(self, context: JobContext) -> None:
        async with context.admin(self.merchant_key) as admin:
            await add_tags(admin, self.payload.order_id, self.payload.tags)
        self.logger.info("billing.order.tagged", order_id=self.payload.order_id, tags=self.payload.tags)


__all__ = [
    "FIRST_ORDER_TAGS",
    "RECURRING_ORDER_TAGS",
    "ChargeBillingCyclesJob",
    "RebillSubscriptionJob",
    "RecurringBillingChargeJob",
    "ScheduleMerchantsToChargeJob",
    "TagSubscriptionOrderJob",
]
