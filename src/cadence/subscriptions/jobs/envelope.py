"""Wire envelope for jobs crossing process boundaries."""

import json
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cadence.subscriptions.exceptions import InvalidJobPayloadError


class JobParameters(BaseModel):
    """Target merchant and opaque payload."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    merchant_key: str = Field(..., alias="merchantKey", min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


class JobEnvelope(BaseModel):
    """`{"jobName", "queueName", "parameters": {"merchantKey", "payload"}}`"""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    job_name: str = Field(..., alias="jobName", min_length=1)
    queue_name: str | None = Field(None, alias="queueName")
    parameters: JobParameters

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def parse(
        cls, raw: "JobEnvelope | httpx.Request | bytes | str | Mapping[str, Any]"
    ) -> "JobEnvelope":
        """Parse an envelope from a request, a JSON body or a decoded mapping."""
        if isinstance(raw, JobEnvelope):
            return raw
        if isinstance(raw, httpx.Request):
            raw = raw.content
        if isinstance(raw, bytes | str):
            try:
                raw = json.loads(raw)
            except ValueError as e:
                raise InvalidJobPayloadError(f"Job body is not valid JSON: {e}") from e
        if not isinstance(raw, Mapping):
            raise InvalidJobPayloadError("Job body must be a JSON object")
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise InvalidJobPayloadError(
                "Job body does not match the envelope shape",
                job_name=raw.get("jobName"),
                errors=e.errors(include_url=False, include_context=False),
            ) from e
