"""
Dunning tracker store tests.
"""

import pytest
from sqlalchemy import func, select

from cadence.subscriptions.dunning.models import DunningTracker
from cadence.subscriptions.dunning.repository import (
    find_or_create_tracker,
    find_tracker,
    mark_completed,
    record_attempts_handled,
)

pytestmark = pytest.mark.unit

MERCHANT = "shop-1.example.com"
CONTRACT = "gid://shopify/SubscriptionContract/1"


async def tracker_count(session) -> int:
    return await session.scalar(select(func.count()).select_from(DunningTracker))


@pytest.mark.asyncio
class TestDunningTrackerRepository:
    async def test_find_or_create_is_idempotent(self, db_session):
        first = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")
        second = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")

        assert first.id == second.id
        assert await tracker_count(db_session) == 1
        assert first.completed_at is None
        assert first.attempts_handled == 0

    async def test_failure_reasons_get_separate_trackers(self, db_session):
        card = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")
        stock = await find_or_create_tracker(
            db_session, MERCHANT, CONTRACT, 3, "insufficient_inventory"
        )

        assert card.id != stock.id
        assert await tracker_count(db_session) == 2

    async def test_find_without_reason_returns_first_for_cycle(self, db_session):
        first = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")
        await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "insufficient_inventory")

        found = await find_tracker(db_session, MERCHANT, CONTRACT, 3)

        assert found is not None
        assert found.id == first.id

    async def test_find_is_scoped_to_cycle_and_merchant(self, db_session):
        await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")

        assert await find_tracker(db_session, MERCHANT, CONTRACT, 4) is None
        assert await find_tracker(db_session, "other.example.com", CONTRACT, 3) is None

    async def test_mark_completed_keeps_first_stamp(self, db_session):
        tracker = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")

        await mark_completed(db_session, tracker)
        stamp = tracker.completed_at
        await mark_completed(db_session, tracker)

        assert stamp is not None
        assert tracker.completed_at == stamp
        assert tracker.is_completed

    async def test_record_attempts_handled_persists(self, db_session):
        tracker = await find_or_create_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")

        await record_attempts_handled(db_session, tracker, 2)
        db_session.expire_all()

        reloaded = await find_tracker(db_session, MERCHANT, CONTRACT, 3, "CARD_DECLINED")
        assert reloaded.attempts_handled == 2
