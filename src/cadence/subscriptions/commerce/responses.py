"""
Typed views of commerce API responses.

Only the fields the billing and dunning core reads are modelled.
"""

from datetime import datetime
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from cadence.subscriptions.commerce.client import GraphQLResponse
from cadence.subscriptions.exceptions import GraphQLResponseError, UserErrorsError

logger = structlog.get_logger(__name__)

# userErrors codes meaning the contract already reached a terminal state
BENIGN_USER_ERROR_CODES = frozenset({"CONTRACT_PAUSED", "BILLING_CYCLE_SKIPPED", "CONTRACT_TERMINATED"})


class CommerceModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


class UserError(CommerceModel):
    field: list[str] | None = None
    message: str
    code: str | None = None


class Contract(CommerceModel):
    id: str
    status: str
    customer_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def flatten_customer(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("customer"), dict):
            data = {**data, "customer_id": data["customer"].get("id")}
        return data


class BillingAttempt(CommerceModel):
    ready: bool
    origin_time: datetime = Field(alias="originTime")


class BillingCycle(CommerceModel):
    cycle_index: int = Field(alias="cycleIndex")
    billing_attempt_expected_date: datetime = Field(alias="billingAttemptExpectedDate")
    status: str
    billing_attempts: list[BillingAttempt] = Field(default_factory=list, alias="billingAttempts")

    @model_validator(mode="before")
    @classmethod
    def flatten_edges(cls, data: Any) -> Any:
        if isinstance(data, dict):
            attempts = data.get("billingAttempts")
            if isinstance(attempts, dict):
                data = {
                    **data,
                    "billingAttempts": [edge["node"] for edge in attempts.get("edges", [])],
                }
        return data

    @property
    def attempts_count(self) -> int:
        return len(self.billing_attempts)

    @property
    def last_attempt(self) -> BillingAttempt | None:
        return self.billing_attempts[-1] if self.billing_attempts else None


class BillingAttemptRef(CommerceModel):
    id: str
    origin_time: datetime = Field(alias="originTime")
    error_code: str | None = Field(None, alias="errorCode")
    contract_id: str

    @model_validator(mode="before")
    @classmethod
    def flatten_contract(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("subscriptionContract"), dict):
            data = {**data, "contract_id": data["subscriptionContract"]["id"]}
        return data


def graphql_data(response: GraphQLResponse, key: str) -> dict[str, Any]:
    """Return ``data[key]`` or raise on top-level errors or a missing key."""
    body = response.json()
    errors = body.get("errors")
    if errors:
        logger.error("commerce.graphql.errors", key=key, errors=errors)
        raise GraphQLResponseError(f"GraphQL errors while reading {key}", key=key, errors=errors)

    value = (body.get("data") or {}).get(key)
    if value is None:
        logger.error("commerce.graphql.missing_key", key=key, body=body)
        raise GraphQLResponseError(
            f"Received invalid response. Expected property `{key}`", key=key
        )
    return value


def user_errors(payload: dict[str, Any]) -> list[UserError]:
    return [UserError.model_validate(error) for error in payload.get("userErrors") or []]


def check_user_errors(
    payload: dict[str, Any],
    operation: str,
    benign_codes: frozenset[str] = BENIGN_USER_ERROR_CODES,
    **log_context: Any,
) -> list[UserError]:
    """Raise ``UserErrorsError`` unless every code reports a terminal contract.

    Returns the benign errors, empty when the mutation succeeded cleanly.
    """
    errors = user_errors(payload)
    if not errors:
        return []

    dumped = [error.model_dump() for error in errors]
    if all(error.code in benign_codes for error in errors):
        logger.warning(
            "commerce.mutation.benign_user_errors",
            operation=operation,
            user_errors=dumped,
            **log_context,
        )
        return errors

    logger.error(
        "commerce.mutation.user_errors", operation=operation, user_errors=dumped, **log_context
    )
    raise UserErrorsError(f"Failed to process {operation}", dumped)
