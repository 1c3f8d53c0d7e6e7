"""Read helpers over the commerce admin API."""

from datetime import datetime

from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.documents import (
    SHOP_QUERY,
    SHOP_TIMEZONE_QUERY,
    SUBSCRIPTION_BILLING_ATTEMPT_QUERY,
    SUBSCRIPTION_CONTRACT_CUSTOMER_QUERY,
    SUBSCRIPTION_CONTRACT_REBILLING_QUERY,
    SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY,
)
from cadence.subscriptions.commerce.responses import (
    BillingAttemptRef,
    BillingCycle,
    Contract,
    graphql_data,
)
from cadence.subscriptions.exceptions import GraphQLResponseError


async def get_merchant_timezone(admin: CommerceAdminClient) -> str:
    shop = graphql_data(await admin.graphql(SHOP_TIMEZONE_QUERY), "shop")
    timezone = shop.get("ianaTimezone")
    if not timezone:
        raise GraphQLResponseError("Shop has no ianaTimezone", key="shop")
    return timezone


async def get_shop(admin: CommerceAdminClient) -> dict:
    return graphql_data(await admin.graphql(SHOP_QUERY), "shop")


async def find_billing_attempt(admin: CommerceAdminClient, billing_attempt_id: str) -> BillingAttemptRef:
    response = await admin.graphql(
        SUBSCRIPTION_BILLING_ATTEMPT_QUERY, variables={"billingAttemptId": billing_attempt_id}
    )
    return BillingAttemptRef.model_validate(graphql_data(response, "subscriptionBillingAttempt"))


async def find_contract_with_billing_cycle(
    admin: CommerceAdminClient, contract_id: str, date: datetime
) -> tuple[Contract, BillingCycle]:
    """Contract and the billing cycle containing ``date``."""
    response = await admin.graphql(
        SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY,
        variables={"contractId": contract_id, "date": date.isoformat()},
    )
    contract = Contract.model_validate(graphql_data(response, "subscriptionContract"))
    billing_cycle = BillingCycle.model_validate(graphql_data(response, "subscriptionBillingCycle"))
    return contract, billing_cycle


async def get_contract_last_payment_status(
    admin: CommerceAdminClient, contract_id: str
) -> str | None:
    response = await admin.graphql(SUBSCRIPTION_CONTRACT_REBILLING_QUERY, variables={"id": contract_id})
    return graphql_data(response, "subscriptionContract").get("lastPaymentStatus")


async def get_contract_customer_id(admin: CommerceAdminClient, contract_id: str) -> str:
    response = await admin.graphql(SUBSCRIPTION_CONTRACT_CUSTOMER_QUERY, variables={"id": contract_id})
    contract = Contract.model_validate(graphql_data(response, "subscriptionContract"))
    if contract.customer_id is None:
        raise GraphQLResponseError(f"Contract {contract_id} has no customer", key="customer")
    return contract.customer_id
