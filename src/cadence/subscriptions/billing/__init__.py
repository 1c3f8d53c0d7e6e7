"""
Recurring billing: merchant billing schedules and the hourly charge window.

Jobs live in ``cadence.subscriptions.billing.jobs`` and are imported from
there; the commerce mutations depend on this package's time helpers.
"""

from cadence.subscriptions.billing.schedule import (
    BillingScheduleCalculator,
    start_of_hour,
    to_iso_z,
)

__all__ = ["BillingScheduleCalculator", "start_of_hour", "to_iso_z"]
