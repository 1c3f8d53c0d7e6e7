"""Customer and merchant notifications."""

from cadence.subscriptions.notifications.service import (
    CustomerTemplate,
    DunningStatus,
    MerchantTemplate,
    NotificationService,
    TemplateInput,
)

__all__ = [
    "CustomerTemplate",
    "DunningStatus",
    "MerchantTemplate",
    "NotificationService",
    "TemplateInput",
]
