"""
Job base class.

A job is an immutable unit of work: a type tag, a target merchant and a
validated payload. It knows how to serialize itself and what to do when
performed, never how it will be executed.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError

from cadence.subscriptions.exceptions import InvalidJobPayloadError
from cadence.subscriptions.jobs.envelope import JobEnvelope, JobParameters
from cadence.subscriptions.jobs.errors import classify_error
from cadence.subscriptions.jobs.types import (
    ErrorClassification,
    JobOutcome,
    JobQueue,
    JobResult,
    JobType,
)

if TYPE_CHECKING:
    from cadence.subscriptions.jobs.context import JobContext

logger = structlog.get_logger(__name__)

# Merchant key carried by jobs that span every merchant
SYSTEM_MERCHANT_KEY = "system"


class JobPayload(BaseModel):
    """Base for job payloads. Keys travel under their aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class EmptyPayload(JobPayload):
    pass


PayloadT = TypeVar("PayloadT", bound=JobPayload)


class Job(ABC, Generic[PayloadT]):
    """Base class for all jobs."""

    job_type: ClassVar[JobType]
    queue: ClassVar[JobQueue] = JobQueue.DEFAULT
    payload_model: ClassVar[type[JobPayload]] = EmptyPayload

    __slots__ = ("merchant_key", "payload")

    merchant_key: str
    payload: PayloadT

    def __init__(self, merchant_key: str, payload: PayloadT | Mapping[str, Any] | None = None):
        if not merchant_key:
            raise InvalidJobPayloadError("Job requires a merchant key", job_name=self.name)
        object.__setattr__(self, "merchant_key", merchant_key)
        object.__setattr__(self, "payload", self._parse_payload(payload))

    @classmethod
    def _parse_payload(cls, payload: Any) -> PayloadT:
        if isinstance(payload, cls.payload_model):
            return payload  # type: ignore[return-value]
        try:
            return cls.payload_model.model_validate(payload or {})  # type: ignore[return-value]
        except ValidationError as e:
            raise InvalidJobPayloadError(
                f"Invalid payload for {cls.job_type.value}",
                job_name=cls.job_type.value,
                errors=e.errors(include_url=False, include_context=False),
            ) from e

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Job):
            return NotImplemented
        return (
            self.job_type == other.job_type
            and self.merchant_key == other.merchant_key
            and self.payload == other.payload
        )

    def __hash__(self) -> int:
        return hash((self.job_type, self.merchant_key, self.payload.model_dump_json()))

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(merchant_key={self.merchant_key!r}, payload={self.payload!r})>"

    @property
    def name(self) -> str:
        return self.job_type.value

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        return logger.bind(job_name=self.name, merchant_key=self.merchant_key)

    # ------------------------------------------------------------------
    # Wire format
    # ------------------------------------------------------------------

    def to_envelope(self) -> JobEnvelope:
        return JobEnvelope(
            job_name=self.name,
            queue_name=self.queue.value,
            parameters=JobParameters(
                merchant_key=self.merchant_key,
                payload=self.payload.model_dump(mode="json", by_alias=True),
            ),
        )

    def to_wire(self) -> dict[str, Any]:
        return self.to_envelope().to_wire()

    def to_json(self) -> str:
        return self.to_envelope().to_json()

    @classmethod
    def from_envelope(cls, envelope: JobEnvelope) -> "Job[Any]":
        if envelope.job_name != cls.job_type.value:
            raise InvalidJobPayloadError(
                f"Envelope for {envelope.job_name} cannot build {cls.job_type.value}",
                job_name=envelope.job_name,
            )
        return cls(envelope.parameters.merchant_key, envelope.parameters.payload)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    @abstractmethod
    async def perform(self, context: "JobContext") -> None:
        """Job-specific business logic."""

    async def attempt(self, context: "JobContext") -> JobResult:
        """Perform the job and report how it ended. Never raises ``Exception``."""
        log = self.logger
        log.info("job.started", payload=self.payload.model_dump(mode="json", by_alias=True))

        try:
            await self.perform(context)
        except Exception as e:
            classification = classify_error(e)
            if classification is ErrorClassification.TERMINAL:
                log.warning("job.terminated", error=str(e), error_type=type(e).__name__)
                return JobResult(self.name, JobOutcome.TERMINATED, classification, e)

            log.error("job.failed", error=str(e), error_type=type(e).__name__, exc_info=True)
            return JobResult(self.name, JobOutcome.FAILED, classification, e)

        log.info("job.completed")
        return JobResult(self.name, JobOutcome.SUCCEEDED)

    async def run(self, context: "JobContext") -> JobResult:
        """Perform the job, swallowing terminal errors and re-raising retryable ones."""
        result = await self.attempt(context)
        result.raise_for_outcome()
        return result


__all__ = ["SYSTEM_MERCHANT_KEY", "EmptyPayload", "Job", "JobPayload"]
