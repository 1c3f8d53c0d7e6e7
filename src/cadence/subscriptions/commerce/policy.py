"""
Merchant retry policy.

Stored in the merchant's settings metaobject on the commerce platform and
read fresh for every dunning decision.
"""

from enum import Enum
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.documents import SETTINGS_METAOBJECT_QUERY
from cadence.subscriptions.exceptions import GraphQLResponseError

logger = structlog.get_logger(__name__)

SETTINGS_METAOBJECT_HANDLE = {"type": "$app:settings", "handle": "subscription_settings"}


class OnFailure(str, Enum):
    """Final action once retries are exhausted."""

    SKIP = "skip"
    CANCEL = "cancel"
    PAUSE = "pause"


class NotificationFrequency(str, Enum):
    IMMEDIATELY = "immediately"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RetryPolicy(BaseModel):
    """Per-merchant dunning settings."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    retry_attempts: int = Field(3, ge=0, alias="retryAttempts")
    days_between_retry_attempts: int = Field(7, ge=0, alias="daysBetweenRetryAttempts")
    on_failure: OnFailure = Field(OnFailure.CANCEL, alias="onFailure")
    inventory_retry_attempts: int = Field(5, ge=0, alias="inventoryRetryAttempts")
    inventory_days_between_retry_attempts: int = Field(
        1, ge=0, alias="inventoryDaysBetweenRetryAttempts"
    )
    inventory_on_failure: OnFailure = Field(OnFailure.SKIP, alias="inventoryOnFailure")
    inventory_notification_frequency: NotificationFrequency = Field(
        NotificationFrequency.WEEKLY, alias="inventoryNotificationFrequency"
    )


def policy_from_fields(fields: list[dict[str, Any]]) -> RetryPolicy:
    """Build a policy from metaobject ``{key, value}`` pairs; blanks take defaults."""
    values = {
        field["key"]: field["value"]
        for field in fields
        if field.get("key") and field.get("value") not in (None, "")
    }
    return RetryPolicy.model_validate(values)


async def load_retry_policy(admin: CommerceAdminClient) -> RetryPolicy | None:
    """Load the merchant's policy; ``None`` when the metaobject is missing."""
    response = await admin.graphql(
        SETTINGS_METAOBJECT_QUERY, variables={"handle": SETTINGS_METAOBJECT_HANDLE}
    )
    body = response.json()
    if body.get("errors"):
        raise GraphQLResponseError(
            "GraphQL errors while reading metaobjectByHandle",
            key="metaobjectByHandle",
            errors=body["errors"],
        )

    metaobject = (body.get("data") or {}).get("metaobjectByHandle")
    if metaobject is None:
        logger.warning("policy.metaobject.missing", merchant_key=admin.merchant_key)
        return None

    try:
        return policy_from_fields(metaobject.get("fields") or [])
    except ValidationError as e:
        logger.error(
            "policy.metaobject.invalid",
            merchant_key=admin.merchant_key,
            errors=e.errors(include_url=False),
        )
        raise
