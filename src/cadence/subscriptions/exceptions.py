"""
Subscription orchestration exceptions.

Custom exceptions for job dispatch, remote commerce calls and dunning with
status codes, context and recovery hints.
"""

from typing import Any


class SubscriptionsError(Exception):
    """
    Base error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 500,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "SUBSCRIPTIONS_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


# ==========================================
# Job dispatch
# ==========================================


class JobError(SubscriptionsError):
    """Job dispatch and execution errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "JOB_ERROR",
        status_code: int = 500,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message,
            error_code,
            status_code=status_code,
            context=context,
            recovery_hint=recovery_hint,
        )


class UnregisteredJobError(JobError):
    """No job class is registered under the requested name."""

    def __init__(self, job_name: str) -> None:
        super().__init__(
            f"Failed to find registered job {job_name}",
            "JOB_NOT_REGISTERED",
            status_code=400,
            context={"job_name": job_name},
            recovery_hint="Register the job type with the runner at process start",
        )
        self.job_name = job_name


class InvalidJobPayloadError(JobError):
    """The envelope or payload failed validation."""

    def __init__(self, message: str, job_name: str | None = None, errors: Any = None) -> None:
        context: dict[str, Any] = {}
        if job_name:
            context["job_name"] = job_name
        if errors is not None:
            context["errors"] = errors
        super().__init__(message, "INVALID_JOB_PAYLOAD", status_code=400, context=context)


class JobFailedError(JobError):
    """A job hit a business-rule failure and should be retried by the queue."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, "JOB_FAILED", status_code=500, context=context)


class SchedulerError(SubscriptionsError):
    """Scheduler backend could not accept the job."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            message,
            "SCHEDULER_ERROR",
            status_code=503,
            context=context,
            recovery_hint="Check the queue backend configuration and credentials",
        )


# ==========================================
# Remote commerce API
# ==========================================


class CommerceApiError(SubscriptionsError):
    """Base exception for commerce API errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "COMMERCE_API_ERROR",
        status_code: int = 502,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, status_code=status_code, context=context)


class CommerceHttpError(CommerceApiError):
    """Commerce API answered with an HTTP error status."""

    def __init__(self, message: str, status_code: int, merchant_key: str | None = None):
        context = {"merchant_key": merchant_key} if merchant_key else {}
        super().__init__(message, "COMMERCE_HTTP_ERROR", status_code=status_code, context=context)


class GraphQLResponseError(CommerceApiError):
    """Response carried top-level errors or lacked the expected data key."""

    def __init__(self, message: str, key: str | None = None, errors: Any = None) -> None:
        context: dict[str, Any] = {}
        if key:
            context["key"] = key
        if errors:
            context["errors"] = errors
        super().__init__(message, "GRAPHQL_RESPONSE_ERROR", context=context)


class UserErrorsError(CommerceApiError):
    """A mutation returned userErrors."""

    def __init__(self, message: str, user_errors: list[dict[str, Any]]) -> None:
        super().__init__(
            message, "MUTATION_USER_ERRORS", status_code=422, context={"user_errors": user_errors}
        )
        self.user_errors = user_errors


class SessionNotFoundError(SubscriptionsError):
    """No offline session exists for the merchant (app not installed)."""

    def __init__(self, merchant_key: str) -> None:
        super().__init__(
            f"Could not find a session for merchant {merchant_key}",
            "SESSION_NOT_FOUND",
            status_code=404,
            context={"merchant_key": merchant_key},
            recovery_hint="The merchant must reinstall the app",
        )
        self.merchant_key = merchant_key


class PolicyNotFoundError(SubscriptionsError):
    """The merchant's retry settings could not be loaded."""

    def __init__(self, merchant_key: str) -> None:
        super().__init__(
            "Failed to load settings from metaobject",
            "POLICY_NOT_FOUND",
            status_code=500,
            context={"merchant_key": merchant_key},
        )
