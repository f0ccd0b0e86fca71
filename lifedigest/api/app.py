"""FastAPI server for the lifelog digest"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lifedigest.api.routes.digest import router as digest_router
from lifedigest.api.routes.health import router as health_router
from lifedigest.config import API_HOST, API_PORT, APP_VERSION
from lifedigest.infrastructure.env import ensure_env_loaded
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter, log_event

# Load environment variables from .env file
ensure_env_loaded()

app = FastAPI(title="Lifelog Digest API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Return a sanitized validation error.

    Side Effects:
        - Logs the validation errors
        - Increments api.validation_errors
    """
    logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
    counter("api.validation_errors")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


app.include_router(health_router)
app.include_router(digest_router)

log_event("api.startup", service="lifelog-digest", version=APP_VERSION)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Lifelog Digest API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "preview": "/preview",
            "run": "/run",
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run("lifedigest.api.app:app", host=API_HOST, port=API_PORT)


if __name__ == "__main__":
    main()
