"""
Subscription contract and billing cycle mutations.

Every helper raises ``GraphQLResponseError`` when the payload key is missing
and ``UserErrorsError`` on user errors. Benign codes, which mean the
contract already reached a terminal state, are logged and accepted unless
the helper is strict.
"""

from datetime import datetime

import structlog

from cadence.subscriptions.billing.schedule import to_iso_z
from cadence.subscriptions.commerce.client import CommerceAdminClient
from cadence.subscriptions.commerce.documents import (
    CHARGE_BILLING_CYCLES_MUTATION,
    SUBSCRIPTION_BILLING_CYCLE_CHARGE_MUTATION,
    SUBSCRIPTION_BILLING_CYCLE_SCHEDULE_EDIT_MUTATION,
    SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION,
    SUBSCRIPTION_CONTRACT_CANCEL_MUTATION,
    SUBSCRIPTION_CONTRACT_FAIL_MUTATION,
    SUBSCRIPTION_CONTRACT_PAUSE_MUTATION,
    TAGS_ADD_MUTATION,
)
from cadence.subscriptions.commerce.responses import UserError, check_user_errors, graphql_data
from cadence.subscriptions.exceptions import GraphQLResponseError

logger = structlog.get_logger(__name__)

NO_BENIGN_CODES: frozenset[str] = frozenset()


async def _contract_mutation(
    admin: CommerceAdminClient,
    document: str,
    key: str,
    contract_id: str,
    strict: bool = False,
) -> list[UserError]:
    response = await admin.graphql(document, variables={"subscriptionContractId": contract_id})
    payload = graphql_data(response, key)
    benign = check_user_errors(
        payload,
        key,
        **({"benign_codes": NO_BENIGN_CODES} if strict else {}),
        merchant_key=admin.merchant_key,
        contract_id=contract_id,
    )
    logger.info(
        "commerce.contract.mutated",
        operation=key,
        merchant_key=admin.merchant_key,
        contract_id=contract_id,
        benign_user_errors=len(benign),
    )
    return benign


async def fail_contract(admin: CommerceAdminClient, contract_id: str) -> list[UserError]:
    return await _contract_mutation(
        admin, SUBSCRIPTION_CONTRACT_FAIL_MUTATION, "subscriptionContractFail", contract_id
    )


async def cancel_contract(admin: CommerceAdminClient, contract_id: str) -> list[UserError]:
    return await _contract_mutation(
        admin, SUBSCRIPTION_CONTRACT_CANCEL_MUTATION, "subscriptionContractCancel", contract_id
    )


async def pause_contract(admin: CommerceAdminClient, contract_id: str) -> list[UserError]:
    return await _contract_mutation(
        admin, SUBSCRIPTION_CONTRACT_PAUSE_MUTATION, "subscriptionContractPause", contract_id
    )


async def activate_contract(admin: CommerceAdminClient, contract_id: str) -> None:
    """Reactivate a failed contract. Any user error fails the call."""
    await _contract_mutation(
        admin,
        SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION,
        "subscriptionContractActivate",
        contract_id,
        strict=True,
    )


async def skip_billing_cycle(
    admin: CommerceAdminClient, contract_id: str, cycle_index: int
) -> list[UserError]:
    response = await admin.graphql(
        SUBSCRIPTION_BILLING_CYCLE_SCHEDULE_EDIT_MUTATION,
        variables={
            "billingCycleInput": {"contractId": contract_id, "selector": {"index": cycle_index}},
            "input": {"reason": "MERCHANT_INITIATED", "skip": True},
        },
    )
    payload = graphql_data(response, "subscriptionBillingCycleScheduleEdit")
    return check_user_errors(
        payload,
        "subscriptionBillingCycleScheduleEdit",
        merchant_key=admin.merchant_key,
        contract_id=contract_id,
        cycle_index=cycle_index,
    )


async def charge_billing_cycle(
    admin: CommerceAdminClient, contract_id: str, origin_time: datetime
) -> list[UserError]:
    """Charge the billing cycle containing ``origin_time``."""
    response = await admin.graphql(
        SUBSCRIPTION_BILLING_CYCLE_CHARGE_MUTATION,
        variables={"subscriptionContractId": contract_id, "originTime": to_iso_z(origin_time)},
    )
    payload = graphql_data(response, "subscriptionBillingCycleCharge")
    return check_user_errors(
        payload,
        "subscriptionBillingCycleCharge",
        merchant_key=admin.merchant_key,
        contract_id=contract_id,
    )


async def bulk_charge_billing_cycles(
    admin: CommerceAdminClient, start_date: datetime, end_date: datetime
) -> str:
    """Charge every unbilled cycle of active contracts expected in the range.

    Returns the bulk job id.
    """
    response = await admin.graphql(
        CHARGE_BILLING_CYCLES_MUTATION,
        variables={
            "startDate": to_iso_z(start_date),
            "endDate": to_iso_z(end_date),
            "contractStatus": ["ACTIVE"],
            "billingCycleStatus": ["UNBILLED"],
            "billingAttemptStatus": "NO_ATTEMPT",
        },
    )
    payload = graphql_data(response, "subscriptionBillingCycleBulkCharge")
    check_user_errors(
        payload,
        "subscriptionBillingCycleBulkCharge",
        benign_codes=NO_BENIGN_CODES,
        merchant_key=admin.merchant_key,
    )

    job_id = (payload.get("job") or {}).get("id")
    if not job_id:
        raise GraphQLResponseError(
            "subscriptionBillingCycleBulkCharge returned no job id",
            key="subscriptionBillingCycleBulkCharge",
        )
    return job_id


async def add_tags(admin: CommerceAdminClient, resource_id: str, tags: list[str]) -> None:
    response = await admin.graphql(TAGS_ADD_MUTATION, variables={"id": resource_id, "tags": tags})
    payload = graphql_data(response, "tagsAdd")
    check_user_errors(
        payload,
        "tagsAdd",
        benign_codes=NO_BENIGN_CODES,
        merchant_key=admin.merchant_key,
        resource_id=resource_id,
    )
