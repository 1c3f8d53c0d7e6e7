"""
Test doubles for the commerce admin API.

``FakeAdminClient`` replays canned GraphQL bodies keyed by document and
records every call, so tests can assert on the variables a job sent.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from cadence.subscriptions.billing.schedule import to_iso_z
from cadence.subscriptions.commerce.client import GraphQLResponse
from cadence.subscriptions.exceptions import SessionNotFoundError

DEFAULT_MERCHANT = "shop-1.example.com"
CONTRACT_ID = "gid://shopify/SubscriptionContract/1"
CUSTOMER_ID = "gid://shopify/Customer/7"
BILLING_ATTEMPT_ID = "gid://shopify/SubscriptionBillingAttempt/99"


def operation_name(document: str) -> str:
    """First line of a document, e.g. ``query Shop {``."""
    return document.strip().splitlines()[0]


class FakeAdminClient:
    """Stands in for ``CommerceAdminClient``.

    Each document has a queue of responses; the last one is repeated once
    the queue is down to a single entry. Exceptions in the queue are raised.
    """

    def __init__(self, merchant_key: str = DEFAULT_MERCHANT) -> None:
        self.merchant_key = merchant_key
        self.responses: dict[str, list[Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def respond(self, document: str, *bodies: Any) -> "FakeAdminClient":
        self.responses.setdefault(document, []).extend(bodies)
        return self

    async def graphql(
        self, document: str, variables: dict[str, Any] | None = None
    ) -> GraphQLResponse:
        self.calls.append((document, variables or {}))
        queue = self.responses.get(document)
        if not queue:
            raise AssertionError(f"Unexpected GraphQL call: {operation_name(document)}")

        body = queue[0] if len(queue) == 1 else queue.pop(0)
        if isinstance(body, Exception):
            raise body
        return GraphQLResponse(200, body)

    def calls_to(self, document: str) -> list[dict[str, Any]]:
        return [variables for sent, variables in self.calls if sent == document]


class FakeAdminFactory:
    """``admin(merchant_key)`` factory handing out one fake client per merchant."""

    def __init__(self) -> None:
        self.clients: dict[str, FakeAdminClient] = {}
        self.uninstalled: set[str] = set()

    def client(self, merchant_key: str = DEFAULT_MERCHANT) -> FakeAdminClient:
        if merchant_key not in self.clients:
            self.clients[merchant_key] = FakeAdminClient(merchant_key)
        return self.clients[merchant_key]

    @asynccontextmanager
    async def __call__(self, merchant_key: str) -> AsyncIterator[FakeAdminClient]:
        if merchant_key in self.uninstalled:
            raise SessionNotFoundError(merchant_key)
        yield self.client(merchant_key)


# ----------------------------------------------------------------------
# Response bodies
# ----------------------------------------------------------------------


def policy_body(**fields: Any) -> dict[str, Any]:
    """Settings metaobject with the given ``{key: value}`` fields."""
    return {
        "data": {
            "metaobjectByHandle": {
                "id": "gid://shopify/Metaobject/1",
                "fields": [{"key": key, "value": str(value)} for key, value in fields.items()],
            }
        }
    }


def missing_policy_body() -> dict[str, Any]:
    return {"data": {"metaobjectByHandle": None}}


def billing_attempt_body(
    origin_time: datetime,
    contract_id: str = CONTRACT_ID,
    error_code: str | None = "PAYMENT_METHOD_DECLINED",
) -> dict[str, Any]:
    return {
        "data": {
            "subscriptionBillingAttempt": {
                "id": BILLING_ATTEMPT_ID,
                "originTime": to_iso_z(origin_time),
                "errorCode": error_code,
                "subscriptionContract": {"id": contract_id},
            }
        }
    }


def contract_with_cycle_body(
    attempts: int = 1,
    status: str = "ACTIVE",
    cycle_status: str = "UNBILLED",
    cycle_index: int = 3,
    expected_date: datetime | None = None,
    origin_time: datetime | None = None,
    ready: bool = True,
    contract_id: str = CONTRACT_ID,
) -> dict[str, Any]:
    origin = to_iso_z(origin_time) if origin_time else "2023-07-10T14:00:00.000Z"
    return {
        "data": {
            "subscriptionContract": {
                "id": contract_id,
                "status": status,
                "customer": {"id": CUSTOMER_ID},
            },
            "subscriptionBillingCycle": {
                "cycleIndex": cycle_index,
                "billingAttemptExpectedDate": (
                    to_iso_z(expected_date) if expected_date else "2023-07-10T14:00:00.000Z"
                ),
                "status": cycle_status,
                "billingAttempts": {
                    "edges": [
                        {"node": {"ready": ready, "originTime": origin}} for _ in range(attempts)
                    ]
                },
            },
        }
    }


def contract_mutation_body(
    key: str, status: str = "ACTIVE", user_errors: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    return {
        "data": {
            key: {
                "contract": {"id": CONTRACT_ID, "status": status},
                "userErrors": user_errors or [],
            }
        }
    }


def mutation_body(key: str, user_errors: list[dict[str, Any]] | None = None, **fields: Any) -> dict[str, Any]:
    return {"data": {key: {**fields, "userErrors": user_errors or []}}}


def user_error(message: str, code: str | None = None) -> dict[str, Any]:
    return {"field": ["subscriptionContractId"], "message": message, "code": code}
