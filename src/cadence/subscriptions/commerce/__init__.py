"""Remote commerce admin API access."""

from cadence.subscriptions.commerce.client import CommerceAdminClient, GraphQLResponse
from cadence.subscriptions.commerce.policy import OnFailure, RetryPolicy, load_retry_policy
from cadence.subscriptions.commerce.responses import (
    BENIGN_USER_ERROR_CODES,
    BillingAttempt,
    BillingAttemptRef,
    BillingCycle,
    Contract,
    check_user_errors,
    graphql_data,
)

__all__ = [
    "BENIGN_USER_ERROR_CODES",
    "BillingAttempt",
    "BillingAttemptRef",
    "BillingCycle",
    "CommerceAdminClient",
    "Contract",
    "GraphQLResponse",
    "OnFailure",
    "RetryPolicy",
    "check_user_errors",
    "graphql_data",
    "load_retry_policy",
]
