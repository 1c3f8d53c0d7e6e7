"""Dunning tracker storage."""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cadence.subscriptions.db import Base, TimestampMixin


class DunningTracker(Base, TimestampMixin):
    """De-duplication record for one failed billing cycle and failure reason.

    ``attempts_handled`` is the number of billing attempts the cycle had when a
    retry was last scheduled; ``completed_at`` closes the record for good.
    """

    __tablename__ = "dunning_trackers"
    __table_args__ = (
        UniqueConstraint(
            "merchant_key",
            "contract_id",
            "billing_cycle_index",
            "failure_reason",
            name="uq_dunning_tracker_cycle_reason",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    merchant_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contract_id: Mapped[str] = mapped_column(String(255), nullable=False)
    billing_cycle_index: Mapped[int] = mapped_column(Integer, nullable=False)
    failure_reason: Mapped[str] = mapped_column(String(255), nullable=False)
    attempts_handled: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def __repr__(self) -> str:
        return (
            f"<DunningTracker(id={self.id}, merchant_key={self.merchant_key!r}, "
            f"contract_id={self.contract_id!r}, billing_cycle_index={self.billing_cycle_index}, "
            f"failure_reason={self.failure_reason!r}, attempts_handled={self.attempts_handled}, "
            f"completed_at={self.completed_at})>"
        )
