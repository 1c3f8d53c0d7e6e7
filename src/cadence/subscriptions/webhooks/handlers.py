"""Webhook topics and the jobs each one enqueues."""

from collections.abc import Callable
from typing import Any

from cadence.subscriptions.billing.jobs import (
    FIRST_ORDER_TAGS,
    RECURRING_ORDER_TAGS,
    TagSubscriptionOrderJob,
)
from cadence.subscriptions.dunning.jobs import DunningStartJob, DunningStopJob
from cadence.subscriptions.jobs.job import Job
from cadence.subscriptions.merchants.jobs import DisableMerchantJob
from cadence.subscriptions.notifications.jobs import CustomerSendEmailJob, MerchantSendEmailJob
from cadence.subscriptions.notifications.service import CustomerTemplate

WebhookHandler = Callable[[str, dict[str, Any]], list[Job[Any]]]

GID_PREFIX = "gid://shopify"


def compose_gid(resource: str, resource_id: int | str) -> str:
    """Global id for a numeric REST id, e.g. ``gid://shopify/SubscriptionContract/1``."""
    return f"{GID_PREFIX}/{resource}/{resource_id}"


def billing_attempt_failure(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    return [DunningStartJob(merchant_key, payload)]


def billing_attempt_success(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    return [
        DunningStopJob(merchant_key, payload),
        TagSubscriptionOrderJob(
            merchant_key,
            {
                "orderId": payload.get("admin_graphql_api_order_id"),
                "tags": list(RECURRING_ORDER_TAGS),
            },
        ),
    ]


def contract_created(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    order_id = payload.get("admin_graphql_api_origin_order_id")
    jobs: list[Job[Any]] = []

    # Contracts created outside checkout have no origin order
    if order_id is not None:
        jobs.append(
            CustomerSendEmailJob(
                merchant_key,
                {**payload, "emailTemplate": CustomerTemplate.NEW_SUBSCRIPTION},
            )
        )
        jobs.append(
            TagSubscriptionOrderJob(
                merchant_key, {"orderId": order_id, "tags": list(FIRST_ORDER_TAGS)}
            )
        )
    return jobs


def contract_cancelled(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    return [
        CustomerSendEmailJob(
            merchant_key,
            {**payload, "emailTemplate": CustomerTemplate.SUBSCRIPTION_CANCELED},
        ),
        MerchantSendEmailJob(
            merchant_key, {"admin_graphql_api_id": payload.get("admin_graphql_api_id")}
        ),
    ]


def billing_cycle_skipped(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    return [
        CustomerSendEmailJob(
            merchant_key,
            {
                "admin_graphql_api_id": compose_gid(
                    "SubscriptionContract", payload.get("subscription_contract_id")
                ),
                "emailTemplate": CustomerTemplate.SUBSCRIPTION_SKIPPED,
                "cycle_index": payload.get("cycle_index"),
            },
        )
    ]


def app_uninstalled(merchant_key: str, payload: dict[str, Any]) -> list[Job[Any]]:
    return [DisableMerchantJob(merchant_key)]


WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {
    "subscription_billing_attempts/failure": billing_attempt_failure,
    "subscription_billing_attempts/success": billing_attempt_success,
    "subscription_contracts/create": contract_created,
    "subscription_contracts/cancel": contract_cancelled,
    "subscription_billing_cycles/skip": billing_cycle_skipped,
    "app/uninstalled": app_uninstalled,
}


__all__ = ["WEBHOOK_HANDLERS", "WebhookHandler", "compose_gid"]
