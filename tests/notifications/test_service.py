"""
Notification service tests.
"""

import pytest

from cadence.subscriptions.commerce.policy import OnFailure
from cadence.subscriptions.notifications.service import (
    CustomerTemplate,
    DunningStatus,
    MerchantTemplate,
    NotificationService,
    TemplateInput,
    dunning_status,
)
from tests.fakes import CONTRACT_ID, CUSTOMER_ID, DEFAULT_MERCHANT

pytestmark = pytest.mark.unit


class TestNotificationService:
    def test_customer_variables(self):
        variables = NotificationService().notify_customer(
            DEFAULT_MERCHANT,
            CUSTOMER_ID,
            TemplateInput(
                subscription_contract_id=CONTRACT_ID,
                template=CustomerTemplate.PAYMENT_FAILURE_LAST_ATTEMPT,
                billing_cycle_index=3,
                dunning_status=DunningStatus.CANCELED,
                final_charge_date="2023-07-24",
            ),
        )

        assert variables == {
            "subscription_contract_id": CONTRACT_ID,
            "template": "SUBSCRIPTION_PAYMENT_FAILURE_LAST_ATTEMPT",
            "billing_cycle_index": 3,
            "dunning_status": "CANCELED",
            "final_charge_date": "2023-07-24",
        }

    def test_merchant_variables_drop_unset_fields(self):
        variables = NotificationService().notify_merchant(
            DEFAULT_MERCHANT,
            TemplateInput(
                subscription_contract_id=CONTRACT_ID,
                template=MerchantTemplate.PAYMENT_FAILURE,
            ),
        )

        assert variables == {
            "subscription_contract_id": CONTRACT_ID,
            "template": "SUBSCRIPTION_PAYMENT_FAILURE_MERCHANT",
        }

    @pytest.mark.parametrize(
        "on_failure, status",
        [
            (OnFailure.CANCEL, DunningStatus.CANCELED),
            (OnFailure.SKIP, DunningStatus.SKIPPED),
            (OnFailure.PAUSE, DunningStatus.PAUSED),
        ],
    )
    def test_dunning_status(self, on_failure, status):
        assert dunning_status(on_failure) is status
