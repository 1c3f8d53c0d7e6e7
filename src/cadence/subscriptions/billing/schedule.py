"""
Billing schedule calculator.

Decides, for one merchant schedule and one UTC hour, whether the merchant's
local billing hour falls on that UTC hour, and which absolute window of
expected billing dates the charge should cover.

The window ends at the end of the merchant's local day and reaches back a
fixed lookback, so a run missed for any reason is recovered by the next one.
The lookback is tied to the trigger cadence in ``BillingSettings``.
"""

from datetime import UTC, datetime, time, timedelta
from functools import cached_property
from typing import Protocol
from zoneinfo import ZoneInfo

from cadence.subscriptions.settings import get_settings

END_OF_DAY = time(23, 59, 59, 999000)


class ScheduleLike(Protocol):
    timezone: str
    hour: int


def start_of_hour(moment: datetime) -> datetime:
    """Truncate to the start of the hour in UTC. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).replace(minute=0, second=0, microsecond=0)


def to_iso_z(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def default_lookback() -> timedelta:
    return timedelta(days=get_settings().billing.charge_lookback_days)


class BillingScheduleCalculator:
    """Pure timezone arithmetic for one schedule at one UTC hour."""

    def __init__(
        self,
        schedule: ScheduleLike,
        target_time: datetime,
        lookback: timedelta | None = None,
    ) -> None:
        self.schedule = schedule
        self.target_time = start_of_hour(target_time)
        self.lookback = lookback if lookback is not None else default_lookback()

    @cached_property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.schedule.timezone)

    @cached_property
    def local_fire_time(self) -> datetime:
        """The merchant's billing hour on the merchant's current local date.

        Wall-clock times in a DST gap resolve to the instant after the
        transition; repeated times resolve to their first occurrence.
        """
        local_now = self.target_time.astimezone(self.zone)
        wall_clock = local_now.replace(
            hour=self.schedule.hour, minute=0, second=0, microsecond=0, fold=0
        )
        # Round trip through UTC to normalize gap times
        return wall_clock.astimezone(UTC).astimezone(self.zone)

    @cached_property
    def utc_fire_time(self) -> datetime:
        return start_of_hour(self.local_fire_time)

    @cached_property
    def billing_end_time_utc(self) -> datetime:
        local_end = datetime.combine(self.local_fire_time.date(), END_OF_DAY, tzinfo=self.zone)
        return local_end.astimezone(UTC)

    @cached_property
    def billing_start_time_utc(self) -> datetime:
        return self.billing_end_time_utc - self.lookback

    def is_billable(self) -> bool:
        return self.utc_fire_time == self.target_time


__all__ = [
    "BillingScheduleCalculator",
    "default_lookback",
    "start_of_hour",
    "to_iso_z",
]
