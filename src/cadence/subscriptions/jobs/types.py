"""Job type tags and execution results."""

from dataclasses import dataclass
from enum import Enum


class JobType(str, Enum):
    """Closed set of job types; values are the wire names."""

    RECURRING_BILLING_CHARGE = "RecurringBillingChargeJob"
    SCHEDULE_MERCHANTS_TO_CHARGE = "ScheduleMerchantsToChargeJob"
    CHARGE_BILLING_CYCLES = "ChargeBillingCyclesJob"
    REBILL_SUBSCRIPTION = "RebillSubscriptionJob"
    TAG_SUBSCRIPTION_ORDER = "TagSubscriptionOrderJob"
    DUNNING_START = "DunningStartJob"
    DUNNING_STOP = "DunningStopJob"
    DISABLE_MERCHANT = "DisableMerchantJob"
    CUSTOMER_SEND_EMAIL = "CustomerSendEmailJob"
    MERCHANT_SEND_EMAIL = "MerchantSendEmailJob"
    SEND_INVENTORY_FAILURE_EMAIL = "SendInventoryFailureEmailJob"
    SEND_WEEKLY_INVENTORY_FAILURE_EMAIL = "SendWeeklyInventoryFailureEmailJob"
    SEND_MONTHLY_INVENTORY_FAILURE_EMAIL = "SendMonthlyInventoryFailureEmailJob"


class JobQueue(str, Enum):
    """Logical queues jobs are routed to."""

    DEFAULT = "default"
    BILLING = "billing"
    REBILLING = "rebilling"
    WEBHOOKS = "webhooks"


class JobOutcome(str, Enum):
    """How a job attempt ended."""

    SUCCEEDED = "succeeded"
    TERMINATED = "terminated"
    FAILED = "failed"


class ErrorClassification(str, Enum):
    """Whether retrying a failed job can ever help."""

    TERMINAL = "terminal"
    RETRYABLE = "retryable"


@dataclass(frozen=True)
class JobResult:
    """Result of one job attempt.

    A terminal failure is a drained job: the queue must not redeliver it.
    """

    job_name: str
    outcome: JobOutcome
    classification: ErrorClassification | None = None
    error: Exception | None = None

    @property
    def should_retry(self) -> bool:
        return self.classification is ErrorClassification.RETRYABLE

    def raise_for_outcome(self) -> None:
        """Re-raise the original error when the failure is retryable."""
        if self.should_retry and self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, str | None]:
        return {
            "job_name": self.job_name,
            "outcome": self.outcome.value,
            "classification": self.classification.value if self.classification else None,
            "error": str(self.error) if self.error else None,
        }
