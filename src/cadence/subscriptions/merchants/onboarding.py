"""Billing schedule activation for installed merchants."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.billing.models import MerchantBillingSchedule
from cadence.subscriptions.billing.repository import upsert_billing_schedule
from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.queries import get_merchant_timezone

logger = structlog.get_logger(__name__)


async def activate_billing_schedule(
    session: AsyncSession, admin: CommerceAdminClient, merchant_key: str
) -> MerchantBillingSchedule:
    """Create or reactivate the merchant's schedule in the shop's timezone."""
    timezone = await get_merchant_timezone(admin)
    schedule = await upsert_billing_schedule(session, merchant_key, active=True, timezone=timezone)
    logger.info("merchant.billing_schedule.activated", merchant_key=merchant_key, timezone=timezone)
    return schedule
