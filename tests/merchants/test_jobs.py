"""
Merchant lifecycle tests.
"""

import pytest
from sqlalchemy import func, select

from cadence.subscriptions.billing.repository import find_schedule, upsert_billing_schedule
from cadence.subscriptions.commerce.documents import SHOP_QUERY, SHOP_TIMEZONE_QUERY
from cadence.subscriptions.commerce.models import MerchantSession
from cadence.subscriptions.exceptions import CommerceHttpError, GraphQLResponseError
from cadence.subscriptions.jobs.types import JobOutcome
from cadence.subscriptions.merchants.jobs import DisableMerchantJob
from cadence.subscriptions.merchants.onboarding import activate_billing_schedule
from tests.fakes import DEFAULT_MERCHANT

pytestmark = pytest.mark.unit

SHOP_BODY = {"data": {"shop": {"id": "gid://shopify/Shop/1", "name": "Shop One"}}}


async def seed_merchant(session_factory) -> None:
    async with session_factory() as session:
        session.add(MerchantSession(merchant_key=DEFAULT_MERCHANT, access_token="shpat_1"))
        await upsert_billing_schedule(session, DEFAULT_MERCHANT, active=True)
        await session.commit()


async def session_count(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(MerchantSession))


@pytest.mark.asyncio
class TestDisableMerchantJob:
    async def test_installed_merchant_is_left_alone(self, runner, admin, session_factory):
        await seed_merchant(session_factory)
        admin.respond(SHOP_QUERY, SHOP_BODY)

        result = await runner.execute(DisableMerchantJob(DEFAULT_MERCHANT).to_wire())

        assert result.outcome is JobOutcome.SUCCEEDED
        assert await session_count(session_factory) == 1
        async with session_factory() as session:
            assert (await find_schedule(session, DEFAULT_MERCHANT)).active is True

    async def test_missing_session_disables(self, runner, admin_factory, session_factory):
        await seed_merchant(session_factory)
        admin_factory.uninstalled.add(DEFAULT_MERCHANT)

        result = await runner.execute(DisableMerchantJob(DEFAULT_MERCHANT).to_wire())

        assert result.outcome is JobOutcome.SUCCEEDED
        assert await session_count(session_factory) == 0
        async with session_factory() as session:
            assert (await find_schedule(session, DEFAULT_MERCHANT)).active is False

    async def test_revoked_token_disables(self, runner, admin, session_factory):
        await seed_merchant(session_factory)
        admin.respond(SHOP_QUERY, CommerceHttpError("Unauthorized", status_code=401))

        await runner.execute(DisableMerchantJob(DEFAULT_MERCHANT).to_wire())

        assert await session_count(session_factory) == 0
        async with session_factory() as session:
            assert (await find_schedule(session, DEFAULT_MERCHANT)).active is False

    async def test_server_errors_are_retried(self, runner, admin, session_factory):
        await seed_merchant(session_factory)
        admin.respond(SHOP_QUERY, CommerceHttpError("Internal error", status_code=500))

        with pytest.raises(CommerceHttpError):
            await runner.execute(DisableMerchantJob(DEFAULT_MERCHANT).to_wire())

        assert await session_count(session_factory) == 1


@pytest.mark.asyncio
class TestActivateBillingSchedule:
    async def test_uses_shop_timezone(self, db_session, admin):
        admin.respond(SHOP_TIMEZONE_QUERY, {"data": {"shop": {"ianaTimezone": "Europe/London"}}})

        schedule = await activate_billing_schedule(db_session, admin, DEFAULT_MERCHANT)

        assert schedule.merchant_key == DEFAULT_MERCHANT
        assert schedule.timezone == "Europe/London"
        assert schedule.active is True

    async def test_reactivates_disabled_schedule(self, db_session, admin):
        await upsert_billing_schedule(db_session, DEFAULT_MERCHANT, active=False, hour=8)
        admin.respond(SHOP_TIMEZONE_QUERY, {"data": {"shop": {"ianaTimezone": "Asia/Kathmandu"}}})

        schedule = await activate_billing_schedule(db_session, admin, DEFAULT_MERCHANT)

        assert schedule.active is True
        assert schedule.hour == 8
        assert schedule.timezone == "Asia/Kathmandu"

    async def test_missing_timezone(self, db_session, admin):
        admin.respond(SHOP_TIMEZONE_QUERY, {"data": {"shop": {"ianaTimezone": None}}})

        with pytest.raises(GraphQLResponseError):
            await activate_billing_schedule(db_session, admin, DEFAULT_MERCHANT)
