"""
Job callback endpoint.

Push-queue backends POST job envelopes here. The status code tells the
queue what to do: 2xx drains the task, 5xx schedules a redelivery, and 4xx
marks an envelope no retry can fix.
"""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cadence.subscriptions.exceptions import InvalidJobPayloadError, UnregisteredJobError
from cadence.subscriptions.jobs.runner import JobRunner
from cadence.subscriptions.settings import settings

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Jobs"])


def get_job_runner(request: Request) -> JobRunner:
    """The process-wide runner built at application startup."""
    return request.app.state.job_runner


@router.post(settings.jobs.execute_path)
async def run_job(request: Request, runner: JobRunner = Depends(get_job_runner)) -> JSONResponse:
    """Execute one job envelope."""
    body = await request.body()

    try:
        result = await runner.execute(body)
    except (UnregisteredJobError, InvalidJobPayloadError) as e:
        logger.warning("jobs.route.rejected", error=e.message, context=e.context)
        return JSONResponse(
            status_code=400,
            content={"status": "failure", "error": e.message, "error_code": e.error_code},
        )
    except Exception as e:
        logger.error("jobs.route.failed", error=str(e), error_type=type(e).__name__)
        return JSONResponse(status_code=500, content={"status": "failure", "error": str(e)})

    return JSONResponse(
        status_code=200,
        content={"status": "success", "outcome": result.outcome.value},
    )


__all__ = ["get_job_runner", "router"]
