"""Dunning: retrying or terminating payment collection after a failed charge."""

from cadence.subscriptions.dunning.inventory import InventoryService
from cadence.subscriptions.dunning.service import DunningOutcome, DunningService

__all__ = ["DunningOutcome", "DunningService", "InventoryService"]
