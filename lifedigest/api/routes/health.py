"""Health check endpoint for the digest API.

Reports credential presence only; no lifelog, Vertex AI or SMTP call is made.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from lifedigest.config import APP_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    has_lifelog_key = bool(os.getenv("LIMITLESS_API_KEY"))
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))
    has_smtp = bool(os.getenv("SMTP_USER") and os.getenv("SMTP_PASSWORD"))

    return {
        "status": "healthy",
        "service": "Lifelog Digest API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "credentials": {
            "limitless_api_key": has_lifelog_key,
            "google_cloud_project": has_project,
            "smtp": has_smtp,
        },
    }
