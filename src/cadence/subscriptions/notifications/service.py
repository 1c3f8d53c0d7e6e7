"""
Customer and merchant notifications.

Delivery is out of scope: a notification is recorded as an audit event that
the mail pipeline consumes.
"""

from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict

from cadence.subscriptions.commerce.policy import OnFailure
from cadence.subscriptions.logging import log_audit_event

logger = structlog.get_logger(__name__)


class CustomerTemplate(str, Enum):
    NEW_SUBSCRIPTION = "NEW_SUBSCRIPTION"
    SUBSCRIPTION_CANCELED = "SUBSCRIPTION_CANCELED"
    SUBSCRIPTION_PAUSED = "SUBSCRIPTION_PAUSED"
    SUBSCRIPTION_RESUMED = "SUBSCRIPTION_RESUMED"
    SUBSCRIPTION_SKIPPED = "SUBSCRIPTION_SKIPPED"
    PAYMENT_FAILURE = "SUBSCRIPTION_PAYMENT_FAILURE"
    PAYMENT_FAILURE_RETRY = "SUBSCRIPTION_PAYMENT_FAILURE_RETRY"
    PAYMENT_FAILURE_LAST_ATTEMPT = "SUBSCRIPTION_PAYMENT_FAILURE_LAST_ATTEMPT"


class MerchantTemplate(str, Enum):
    SUBSCRIPTION_CANCELED = "SUBSCRIPTION_CANCELED_MERCHANT"
    PAYMENT_FAILURE = "SUBSCRIPTION_PAYMENT_FAILURE_MERCHANT"
    INVENTORY_FAILURE = "SUBSCRIPTION_INVENTORY_FAILURE_MERCHANT"


class DunningStatus(str, Enum):
    CANCELED = "CANCELED"
    SKIPPED = "SKIPPED"
    PAUSED = "PAUSED"


_DUNNING_STATUS = {
    OnFailure.CANCEL: DunningStatus.CANCELED,
    OnFailure.SKIP: DunningStatus.SKIPPED,
    OnFailure.PAUSE: DunningStatus.PAUSED,
}


def dunning_status(on_failure: OnFailure) -> DunningStatus:
    return _DUNNING_STATUS[on_failure]


class TemplateInput(BaseModel):
    """Variables rendered into a notification template."""

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    subscription_contract_id: str
    template: CustomerTemplate | MerchantTemplate
    billing_cycle_index: int | None = None
    dunning_status: DunningStatus | None = None
    final_charge_date: str | None = None


class NotificationService:
    """Records notifications for the mail pipeline."""

    def notify_customer(
        self, merchant_key: str, customer_id: str, template_input: TemplateInput
    ) -> dict[str, Any]:
        variables = template_input.model_dump(exclude_none=True)
        log_audit_event(
            "notification.customer.queued",
            "notification",
            merchant_key=merchant_key,
            resource_type="customer",
            resource_id=customer_id,
            **variables,
        )
        return variables

    def notify_merchant(self, merchant_key: str, template_input: TemplateInput) -> dict[str, Any]:
        variables = template_input.model_dump(exclude_none=True)
        log_audit_event(
            "notification.merchant.queued",
            "notification",
            merchant_key=merchant_key,
            resource_type="merchant",
            resource_id=merchant_key,
            **variables,
        )
        return variables

    def notify_inventory_failures(self, merchant_key: str) -> None:
        log_audit_event(
            "notification.inventory_failures.queued",
            "notification",
            merchant_key=merchant_key,
            resource_type="merchant",
            resource_id=merchant_key,
            template=MerchantTemplate.INVENTORY_FAILURE.value,
        )
