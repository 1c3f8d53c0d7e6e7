"""Terminal vs retryable classification of job failures."""

from cadence.subscriptions.exceptions import CommerceHttpError, SessionNotFoundError
from cadence.subscriptions.jobs.types import ErrorClassification

# Payment required (frozen), forbidden, not found, locked
TERMINAL_STATUS_CODES = frozenset({402, 403, 404, 423})


def is_terminal(error: BaseException) -> bool:
    """Retrying will not succeed until the merchant's state changes."""
    if isinstance(error, SessionNotFoundError):
        return True
    if isinstance(error, CommerceHttpError):
        return error.status_code in TERMINAL_STATUS_CODES
    return False


def classify_error(error: BaseException) -> ErrorClassification:
    if is_terminal(error):
        return ErrorClassification.TERMINAL
    return ErrorClassification.RETRYABLE


__all__ = ["TERMINAL_STATUS_CODES", "classify_error", "is_terminal"]
