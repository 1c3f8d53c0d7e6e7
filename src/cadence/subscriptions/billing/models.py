"""Billing schedule storage."""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cadence.subscriptions.db import Base, TimestampMixin

class MerchantBillingSchedule(Base, TimestampMixin):
    """When, in the merchant's own calendar, recurring billing fires.

    One row per merchant. ``active`` is cleared when the merchant becomes
    inaccessible and set again on reactivation. New rows take their timezone
    and hour from the billing settings unless the caller provides them.
    """

    __tablename__ = "billing_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    merchant_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    hour: Mapped[int] = mapped_column(Integer, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    def __repr__(self) -> str:
        return (
            f"<MerchantBillingSchedule(id={self.id}, merchant_key={self.merchant_key!r}, "
            f"timezone={self.timezone!r}, hour={self.hour}, active={self.active})>"
        )
