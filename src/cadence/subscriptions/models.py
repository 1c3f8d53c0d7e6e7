"""
Central Model Registry

Imports every SQLAlchemy model so the tables are registered on
``Base.metadata`` before ``create_all`` or alembic autogenerate runs.
"""

from cadence.subscriptions.billing.models import MerchantBillingSchedule
from cadence.subscriptions.commerce.models import MerchantSession
from cadence.subscriptions.db import Base
from cadence.subscriptions.dunning.models import DunningTracker

__all__ = ["Base", "DunningTracker", "MerchantBillingSchedule", "MerchantSession"]
