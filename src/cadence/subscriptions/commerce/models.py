"""Merchant session storage."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cadence.subscriptions.db import Base, TimestampMixin


class MerchantSession(Base, TimestampMixin):
    """Offline admin API credentials for an installed merchant."""

    __tablename__ = "merchant_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    merchant_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    scope: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    def __repr__(self) -> str:
        return f"<MerchantSession(id={self.id}, merchant_key={self.merchant_key!r})>"
