"""
Digest endpoints.

- GET /preview: render the digest for a day (default yesterday) as HTML, no email
- POST /run: render and send the digest, return the execution summary

Each request builds, runs and clears its own registry.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse

from lifedigest.digest.runner import DigestRun, run_digest
from lifedigest.extractors.errors import InitializationError
from lifedigest.infrastructure.env import DigestEnv
from lifedigest.lifelogs.client import LifelogFetchError
from lifedigest.lifelogs.formatting import window_for_day
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter

router = APIRouter(tags=["digest"])
logger = get_logger(__name__)

DigestRunner = Callable[..., Awaitable[DigestRun]]


def get_env() -> DigestEnv:
    return DigestEnv.from_environ()


def get_runner() -> DigestRunner:
    return run_digest


async def _run(
    env: DigestEnv, runner: DigestRunner, day: date | None, send: bool
) -> DigestRun:
    if not env.limitless_api_key:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="LIMITLESS_API_KEY is not configured",
        )

    kwargs: dict[str, Any] = {"send": send}
    if day is not None:
        window = window_for_day(day)
        kwargs.update(start=window.start, end=window.end)

    try:
        return await runner(env, **kwargs)
    except LifelogFetchError as e:
        counter("api.digest.fetch_failed")
        logger.error("Lifelog fetch failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not fetch lifelogs"
        ) from e
    except InitializationError as e:
        counter("api.digest.init_failed")
        logger.error("Extractor initialization failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Extractor '{e.extractor_id}' could not be initialized",
        ) from e
    except Exception as e:
        # Raised when the registry aborts on the first extractor failure
        counter("api.digest.aborted")
        logger.error("Digest aborted by extractor failure: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Digest aborted by an extractor failure",
        ) from e


@router.get("/preview", response_class=HTMLResponse)
async def preview_digest(
    day: date | None = Query(default=None, alias="date"),
    env: DigestEnv = Depends(get_env),
    runner: DigestRunner = Depends(get_runner),
) -> HTMLResponse:
    run = await _run(env, runner, day, send=False)
    return HTMLResponse(content=run.digest.html)


@router.post("/run")
async def run_and_send(
    day: date | None = Query(default=None, alias="date"),
    env: DigestEnv = Depends(get_env),
    runner: DigestRunner = Depends(get_runner),
) -> dict[str, Any]:
    run = await _run(env, runner, day, send=True)
    return {
        "day": run.window.day.isoformat(),
        "lifelogs": run.lifelog_count,
        "sent": run.sent,
        "subject": run.digest.subject,
        "report": run.report.to_dict(),
    }
