"""
structlog configuration for the API process, the Celery worker and the CLI.

Job execution binds ``job_name`` and ``merchant_key`` into the context so
every event logged while a job runs carries them. Customer and merchant
notifications are written as audit events on the ``audit`` logger.
"""

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from cadence.subscriptions.settings import Settings, get_settings

AUDIT_LOGGER_NAME = "audit"

_configured = False


def service_context(settings: Settings) -> Processor:
    """Processor stamping the service name and environment on every event."""

    def add_service_context(
        logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> EventDict:
        event_dict.setdefault("service", settings.app_name)
        event_dict.setdefault("environment", settings.environment.value)
        return event_dict

    return add_service_context


def build_processors(settings: Settings) -> list[Processor]:
    observability = settings.observability
    processors: list[Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        service_context(settings),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if observability.enable_correlation_ids:
        processors.insert(0, structlog.contextvars.merge_contextvars)

    if observability.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(settings: Settings | None = None, *, force: bool = False) -> None:
    """Configure structlog once per process; ``force`` reconfigures."""
    global _configured
    if _configured and not force:
        return

    settings = settings or get_settings()
    level = logging.getLevelName(settings.observability.log_level.value)
    logging.basicConfig(format="%(message)s", level=level)

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=not settings.testing,
    )
    _configured = True


@contextmanager
def bound_job_context(job_name: str, merchant_key: str) -> Iterator[None]:
    """Bind the running job into the logging context for its duration."""
    with structlog.contextvars.bound_contextvars(job_name=job_name, merchant_key=merchant_key):
        yield


def log_audit_event(
    action: str,
    category: str,
    merchant_key: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    **kwargs: Any,
) -> None:
    """Record a notification as an audit event."""
    structlog.get_logger(AUDIT_LOGGER_NAME).info(
        action,
        audit_category=category,
        audit_merchant_key=merchant_key,
        audit_resource_type=resource_type,
        audit_resource_id=resource_id,
        **kwargs,
    )


__all__ = ["bound_job_context", "configure_logging", "log_audit_event"]
