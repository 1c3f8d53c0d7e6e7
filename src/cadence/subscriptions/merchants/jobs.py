"""Merchant lifecycle jobs."""

from cadence.subscriptions.billing.repository import upsert_billing_schedule
from cadence.subscriptions.commerce.queries import get_shop
from cadence.subscriptions.commerce.session import delete_merchant_sessions
from cadence.subscriptions.exceptions import CommerceHttpError, SessionNotFoundError
from cadence.subscriptions.jobs.context import JobContext
from cadence.subscriptions.jobs.job import EmptyPayload, Job
from cadence.subscriptions.jobs.types import JobQueue, JobType

UNAUTHORIZED = 401


class DisableMerchantJob(Job[EmptyPayload]):
    """Stop billing a merchant that uninstalled the app.

    Uninstall webhooks can arrive after a reinstall, so the merchant is only
    disabled when the admin API no longer accepts its credentials.
    """

    job_type = JobType.DISABLE_MERCHANT
    queue = JobQueue.WEBHOOKS

    async def app_installed(self, context: JobContext) -> bool:
        try:
            async with context.admin(self.merchant_key) as admin:
                await get_shop(admin)
        except SessionNotFoundError:
            return False
        except CommerceHttpError as e:
            if e.status_code == UNAUTHORIZED:
                return False
            raise
        return True

    async def perform(self, context: JobContext) -> None:
        if await self.app_installed(context):
            self.logger.info("merchant.disable.skipped", reason="app is installed")
            return

        async with context.session() as session:
            await delete_merchant_sessions(session, self.merchant_key)
            await upsert_billing_schedule(session, self.merchant_key, active=False)

        self.logger.info("merchant.disabled")


__all__ = ["DisableMerchantJob"]
