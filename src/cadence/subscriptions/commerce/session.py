"""
Merchant session lookup and admin client construction.

A merchant without a stored session has uninstalled the app; asking for its
admin client raises ``SessionNotFoundError``, which jobs treat as terminal.
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.models import MerchantSession
from cadence.subscriptions.exceptions import SessionNotFoundError
from cadence.subscriptions.settings import Settings

logger = structlog.get_logger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def find_merchant_session(session: AsyncSession, merchant_key: str) -> MerchantSession | None:
    result = await session.execute(
        select(MerchantSession)
        .where(MerchantSession.merchant_key == merchant_key)
        .order_by(MerchantSession.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def delete_merchant_sessions(session: AsyncSession, merchant_key: str) -> int:
    result = await session.execute(
        delete(MerchantSession).where(MerchantSession.merchant_key == merchant_key)
    )
    logger.info("merchant.sessions.deleted", merchant_key=merchant_key, count=result.rowcount)
    return result.rowcount or 0


def admin_endpoint(settings: Settings, merchant_key: str) -> str:
    return settings.commerce.base_url_template.format(
        merchant_key=merchant_key, api_version=settings.commerce.api_version
    )


def merchant_admin_factory(
    session_scope: SessionScope, settings: Settings
) -> Callable[[str], AbstractAsyncContextManager[CommerceAdminClient]]:
    """Build ``admin(merchant_key)``: an async context manager yielding a client."""

    @asynccontextmanager
    async def admin(merchant_key: str) -> AsyncIterator[CommerceAdminClient]:
        async with session_scope() as session:
            stored = await find_merchant_session(session, merchant_key)
        if stored is None:
            raise SessionNotFoundError(merchant_key)

        client = CommerceAdminClient(
            merchant_key,
            stored.access_token,
            admin_endpoint(settings, merchant_key),
            timeout=settings.commerce.timeout,
            verify_ssl=settings.commerce.verify_ssl,
        )
        async with client:
            yield client

    return admin
