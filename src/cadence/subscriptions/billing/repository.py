"""
Billing schedule store operations.

Includes the batch paginator: an iterative, cursor-based walk over
schedules in primary-key order, one page at a time.
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import ColumnElement, Select, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.billing.models import MerchantBillingSchedule
from cadence.subscriptions.settings import get_settings

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 1000

PageHandler = Callable[[Sequence[MerchantBillingSchedule]], Awaitable[Any]]


def active_schedules() -> ColumnElement[bool]:
    return MerchantBillingSchedule.active.is_(True)


async def find_many(
    session: AsyncSession,
    where: ColumnElement[bool] | None = None,
    cursor: int | None = None,
    take: int = DEFAULT_PAGE_SIZE,
) -> Sequence[MerchantBillingSchedule]:
    """One page of schedules with ``id > cursor``, ordered by id."""
    stmt: Select[tuple[MerchantBillingSchedule]] = select(MerchantBillingSchedule)
    if where is not None:
        stmt = stmt.where(where)
    if cursor is not None:
        stmt = stmt.where(MerchantBillingSchedule.id > cursor)
    stmt = stmt.order_by(MerchantBillingSchedule.id.asc()).limit(take)

    result = await session.execute(stmt)
    return result.scalars().all()


async def iter_schedule_pages(
    session: AsyncSession,
    where: ColumnElement[bool] | None = None,
    take: int = DEFAULT_PAGE_SIZE,
) -> AsyncIterator[Sequence[MerchantBillingSchedule]]:
    """Yield non-empty pages until a page comes back empty."""
    if take < 1:
        raise ValueError("take must be positive")

    cursor: int | None = None
    while True:
        page = await find_many(session, where=where, cursor=cursor, take=take)
        if not page:
            return
        yield page
        cursor = page[-1].id


async def paginate(
    session: AsyncSession,
    handler: PageHandler,
    where: ColumnElement[bool] | None = None,
    take: int = DEFAULT_PAGE_SIZE,
) -> int:
    """Feed each page to ``handler``, one page at a time.

    Returns the number of pages handled.
    """
    pages = 0
    async for page in iter_schedule_pages(session, where=where, take=take):
        pages += 1
        logger.debug("billing.schedules.page", page=pages, size=len(page), last_id=page[-1].id)
        await handler(page)
    return pages


async def find_schedule(session: AsyncSession, merchant_key: str) -> MerchantBillingSchedule | None:
    result = await session.execute(
        select(MerchantBillingSchedule).where(MerchantBillingSchedule.merchant_key == merchant_key)
    )
    return result.scalar_one_or_none()


async def upsert_billing_schedule(
    session: AsyncSession,
    merchant_key: str,
    *,
    active: bool | None = None,
    timezone: str | None = None,
    hour: int | None = None,
) -> MerchantBillingSchedule:
    """Insert or update the merchant's schedule by key.

    Only the given fields are updated on conflict. A new row falls back to
    the configured default timezone and hour.
    """
    defaults = get_settings().billing
    create: dict[str, Any] = {
        "merchant_key": merchant_key,
        "active": True if active is None else active,
        "timezone": timezone or defaults.default_timezone,
        "hour": defaults.default_hour if hour is None else hour,
    }
    update = {
        key: value
        for key, value in (("active", active), ("timezone", timezone), ("hour", hour))
        if value is not None
    }
    if update:
        update["updated_at"] = datetime.now(UTC)

    dialect = session.get_bind().dialect.name
    insert = pg_insert if dialect == "postgresql" else sqlite_insert
    stmt = insert(MerchantBillingSchedule).values(**create)
    if update:
        stmt = stmt.on_conflict_do_update(index_elements=["merchant_key"], set_=update)
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=["merchant_key"])
    await session.execute(stmt)
    await session.flush()

    schedule = await find_schedule(session, merchant_key)
    if schedule is None:  # pragma: no cover
        raise RuntimeError(f"Billing schedule for {merchant_key} vanished after upsert")
    await session.refresh(schedule)

    logger.info(
        "billing.schedule.upserted",
        merchant_key=merchant_key,
        active=schedule.active,
        timezone=schedule.timezone,
        hour=schedule.hour,
    )
    return schedule
