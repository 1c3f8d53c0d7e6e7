"""Dunning tracker store operations."""

from datetime import UTC, datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.dunning.models import DunningTracker

logger = structlog.get_logger(__name__)


async def find_tracker(
    session: AsyncSession,
    merchant_key: str,
    contract_id: str,
    billing_cycle_index: int,
    failure_reason: str | None = None,
) -> DunningTracker | None:
    """First tracker for the cycle, optionally narrowed to one failure reason."""
    stmt = select(DunningTracker).where(
        DunningTracker.merchant_key == merchant_key,
        DunningTracker.contract_id == contract_id,
        DunningTracker.billing_cycle_index == billing_cycle_index,
    )
    if failure_reason is not None:
        stmt = stmt.where(DunningTracker.failure_reason == failure_reason)
    result = await session.execute(stmt.order_by(DunningTracker.id.asc()).limit(1))
    return result.scalar_one_or_none()


async def find_or_create_tracker(
    session: AsyncSession,
    merchant_key: str,
    contract_id: str,
    billing_cycle_index: int,
    failure_reason: str,
) -> DunningTracker:
    """Return the tracker for the key, creating it if absent.

    A concurrent insert of the same key surfaces as an ``IntegrityError``
    inside the savepoint and resolves to the existing row.
    """
    existing = await find_tracker(
        session, merchant_key, contract_id, billing_cycle_index, failure_reason
    )
    if existing is not None:
        return existing

    tracker = DunningTracker(
        merchant_key=merchant_key,
        contract_id=contract_id,
        billing_cycle_index=billing_cycle_index,
        failure_reason=failure_reason,
        attempts_handled=0,
    )
    try:
        async with session.begin_nested():
            session.add(tracker)
    except IntegrityError:
        logger.info(
            "dunning.tracker.concurrent_create",
            merchant_key=merchant_key,
            contract_id=contract_id,
            billing_cycle_index=billing_cycle_index,
        )
        existing = await find_tracker(
            session, merchant_key, contract_id, billing_cycle_index, failure_reason
        )
        if existing is None:
            raise
        return existing

    logger.info(
        "dunning.tracker.created",
        merchant_key=merchant_key,
        contract_id=contract_id,
        billing_cycle_index=billing_cycle_index,
        failure_reason=failure_reason,
    )
    return tracker


async def mark_completed(session: AsyncSession, tracker: DunningTracker) -> DunningTracker:
    """Stamp ``completed_at``; a tracker already completed keeps its stamp."""
    if tracker.completed_at is None:
        tracker.completed_at = datetime.now(UTC)
        await session.flush()
        logger.info("dunning.tracker.completed", tracker_id=tracker.id)
    return tracker


async def record_attempts_handled(
    session: AsyncSession, tracker: DunningTracker, attempts_count: int
) -> DunningTracker:
    """Remember that the cycle's ``attempts_count``-th failure has been acted on."""
    tracker.attempts_handled = attempts_count
    await session.flush()
    logger.info(
        "dunning.tracker.attempts_handled", tracker_id=tracker.id, attempts_handled=attempts_count
    )
    return tracker
