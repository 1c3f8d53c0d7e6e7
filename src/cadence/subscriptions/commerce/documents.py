"""GraphQL documents sent to the commerce admin API."""

SHOP_TIMEZONE_QUERY = """
query ShopTimezone {
  shop {
    ianaTimezone
  }
}
"""

SHOP_QUERY = """
query Shop {
  shop {
    id
    name
  }
}
"""

SETTINGS_METAOBJECT_QUERY = """
query SettingsMetaobject($handle: MetaobjectHandleInput!) {
  metaobjectByHandle(handle: $handle) {
    id
    fields {
      key
      value
    }
  }
}
"""

SUBSCRIPTION_BILLING_ATTEMPT_QUERY = """
query SubscriptionBillingAttempt($billingAttemptId: ID!) {
  subscriptionBillingAttempt(id: $billingAttemptId) {
    id
    originTime
    errorCode
    subscriptionContract {
      id
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_WITH_BILLING_CYCLE_QUERY = """
query SubscriptionContractWithBillingCycle($contractId: ID!, $date: DateTime!) {
  subscriptionContract(id: $contractId) {
    id
    status
    customer {
      id
    }
  }
  subscriptionBillingCycle(
    billingCycleInput: {contractId: $contractId, selector: {date: $date}}
  ) {
    cycleIndex
    billingAttemptExpectedDate
    status
    billingAttempts(first: 20) {
      edges {
        node {
          ready
          originTime
        }
      }
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_REBILLING_QUERY = """
query SubscriptionContractRebilling($id: ID!) {
  subscriptionContract(id: $id) {
    id
    status
    lastPaymentStatus
  }
}
"""

SUBSCRIPTION_CONTRACT_CUSTOMER_QUERY = """
query SubscriptionContractCustomer($id: ID!) {
  subscriptionContract(id: $id) {
    id
    status
    customer {
      id
    }
  }
}
"""

CHARGE_BILLING_CYCLES_MUTATION = """
mutation ChargeBillingCycles(
  $startDate: DateTime!
  $endDate: DateTime!
  $contractStatus: [SubscriptionContractSubscriptionStatus!]
  $billingCycleStatus: [SubscriptionBillingCycleBillingCycleStatus!]
  $billingAttemptStatus: SubscriptionBillingCycleBillingAttemptStatus
) {
  subscriptionBillingCycleBulkCharge(
    billingAttemptExpectedDateRange: {startDate: $startDate, endDate: $endDate}
    filters: {
      contractStatus: $contractStatus
      billingCycleStatus: $billingCycleStatus
      billingAttemptStatus: $billingAttemptStatus
    }
  ) {
    job {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""

SUBSCRIPTION_BILLING_CYCLE_CHARGE_MUTATION = """
mutation SubscriptionBillingCycleCharge($subscriptionContractId: ID!, $originTime: DateTime!) {
  subscriptionBillingCycleCharge(
    subscriptionContractId: $subscriptionContractId
    billingCycleSelector: {date: $originTime}
  ) {
    subscriptionBillingAttempt {
      id
      ready
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_FAIL_MUTATION = """
mutation SubscriptionContractFail($subscriptionContractId: ID!) {
  subscriptionContractFail(subscriptionContractId: $subscriptionContractId) {
    contract {
      id
      status
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_CANCEL_MUTATION = """
mutation SubscriptionContractCancel($subscriptionContractId: ID!) {
  subscriptionContractCancel(subscriptionContractId: $subscriptionContractId) {
    contract {
      id
      status
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_PAUSE_MUTATION = """
mutation SubscriptionContractPause($subscriptionContractId: ID!) {
  subscriptionContractPause(subscriptionContractId: $subscriptionContractId) {
    contract {
      id
      status
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

SUBSCRIPTION_CONTRACT_ACTIVATE_MUTATION = """
mutation SubscriptionContractActivate($subscriptionContractId: ID!) {
  subscriptionContractActivate(subscriptionContractId: $subscriptionContractId) {
    contract {
      id
      status
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

SUBSCRIPTION_BILLING_CYCLE_SCHEDULE_EDIT_MUTATION = """
mutation SubscriptionBillingCycleScheduleEdit(
  $billingCycleInput: SubscriptionBillingCycleInput!
  $input: SubscriptionBillingCycleScheduleEditInput!
) {
  subscriptionBillingCycleScheduleEdit(billingCycleInput: $billingCycleInput, input: $input) {
    billingCycle {
      cycleIndex
      skipped
    }
    userErrors {
      field
      message
      code
    }
  }
}
"""

TAGS_ADD_MUTATION = """
mutation TagsAdd($id: ID!, $tags: [String!]!) {
  tagsAdd(id: $id, tags: $tags) {
    node {
      id
    }
    userErrors {
      field
      message
    }
  }
}
"""
