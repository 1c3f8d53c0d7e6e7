"""
Webhook intake.

Each topic maps to the jobs it enqueues. The handler only validates and
enqueues; all remote calls happen when the jobs run.
"""

import base64
import hashlib
import hmac
import json
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from cadence.subscriptions.exceptions import InvalidJobPayloadError
from cadence.subscriptions.jobs.router import get_job_runner
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.webhooks.handlers import WEBHOOK_HANDLERS

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


def webhook_signature(secret: str, body: bytes) -> str:
    """Base64 HMAC-SHA256 of the raw body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_webhook_signature(secret: str, body: bytes, signature: str | None) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(webhook_signature(secret, body), signature)


@router.post("/{topic:path}")
async def receive_webhook(
    topic: str,
    request: Request,
    runner: JobRunner = Depends(get_job_runner),
) -> dict[str, Any]:
    """Enqueue the jobs for one webhook delivery."""
    config = runner.context.settings.webhooks
    body = await request.body()

    merchant_key = request.headers.get(config.merchant_header)
    if not merchant_key:
        raise HTTPException(status_code=400, detail=f"Missing {config.merchant_header} header")

    if config.secret and not verify_webhook_signature(
        config.secret, body, request.headers.get(config.hmac_header)
    ):
        logger.warning("webhooks.signature_invalid", topic=topic, merchant_key=merchant_key)
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    handler = WEBHOOK_HANDLERS.get(topic)
    if handler is None:
        raise HTTPException(status_code=404, detail=f"Unsupported webhook topic {topic}")

    try:
        payload = json.loads(body or b"{}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Webhook body is not valid JSON") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Webhook body must be a JSON object")

    logger.info("webhooks.received", topic=topic, merchant_key=merchant_key)

    try:
        jobs = handler(merchant_key, payload)
    except InvalidJobPayloadError as e:
        logger.warning("webhooks.payload_invalid", topic=topic, context=e.context)
        raise HTTPException(status_code=400, detail=e.message) from e

    for job in jobs:
        await runner.enqueue(job)

    return {"status": "accepted"}


__all__ = ["router", "verify_webhook_signature", "webhook_signature"]
