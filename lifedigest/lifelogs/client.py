"""
Limitless lifelog API client.

Fetches one day's lifelogs with cursor pagination. Each page request is
retried with exponential backoff on connection errors, timeouts, 429 and 5xx;
other HTTP errors fail immediately.

Side Effects:
    - Makes HTTPS requests to the lifelog API
"""

from __future__ import annotations

from typing import Any

import requests
from pydantic import ValidationError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from lifedigest.config import (
    DIGEST_TIMEZONE,
    LIFELOG_API_URL,
    LIFELOG_MAX_PAGES,
    LIFELOG_PAGE_LIMIT,
    LIFELOG_REQUEST_TIMEOUT,
    LIFELOG_RETRY_MAX,
)
from lifedigest.lifelogs.formatting import format_lifelog_markdown
from lifedigest.lifelogs.models import Lifelog
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

LIFELOGS_PATH = "/v1/lifelogs"


class LifelogFetchError(RuntimeError):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        status = self.status_code
        return status is not None and (status == 429 or 500 <= status < 600)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, LifelogFetchError):
        return exc.retryable
    return isinstance(exc, requests.ConnectionError | requests.Timeout)


class LifelogClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = LIFELOG_API_URL,
        timezone: str = DIGEST_TIMEZONE,
        page_limit: int = LIFELOG_PAGE_LIMIT,
        max_pages: int = LIFELOG_MAX_PAGES,
        session: requests.Session | None = None,
        request_timeout: float = LIFELOG_REQUEST_TIMEOUT,
    ):
        if not api_key:
            raise ValueError("LIMITLESS_API_KEY is required to fetch lifelogs")
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timezone = timezone
        self.page_limit = page_limit
        self.max_pages = max_pages
        self.request_timeout = request_timeout
        self.session = session or requests.Session()

    def fetch(self, start: str, end: str) -> list[Lifelog]:
        """
        Fetch every lifelog between start and end (local "YYYY-MM-DD HH:MM:SS").

        Raises:
            LifelogFetchError: non-retryable HTTP error, retries exhausted,
                or a malformed response body
        """
        params: dict[str, Any] = {
            "start": start,
            "end": end,
            "timezone": self.timezone,
            "includeMarkdown": "true",
            "includeHeadings": "true",
            "limit": self.page_limit,
        }
        lifelogs: list[Lifelog] = []
        cursor: str | None = None

        with time_block("lifelogs.fetch.latency"):
            for page in range(1, self.max_pages + 1):
                page_params = dict(params)
                if cursor:
                    page_params["cursor"] = cursor

                try:
                    payload = self._get_page(page_params)
                except requests.RequestException as exc:
                    counter("lifelogs.fetch.failed")
                    raise LifelogFetchError(f"Failed to fetch lifelogs: {exc}") from exc

                lifelogs.extend(self._parse_entries(payload))
                cursor = (payload.get("meta") or {}).get("lifelogs", {}).get("nextCursor")
                if not cursor:
                    break
            else:
                logger.warning(
                    "Stopped lifelog pagination after %d pages; more results may exist",
                    self.max_pages,
                )

        log_event("lifelogs.fetched", count=len(lifelogs), pages=page, start=start, end=end)
        return lifelogs

    @retry(
        stop=stop_after_attempt(LIFELOG_RETRY_MAX),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    def _get_page(self, params: dict[str, Any]) -> dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}{LIFELOGS_PATH}",
            params=params,
            headers={"X-API-Key": self.api_key, "Content-Type": "application/json"},
            timeout=self.request_timeout,
        )
        if not response.ok:
            counter(f"lifelogs.http_{response.status_code}")
            error = LifelogFetchError(
                f"Failed to fetch lifelogs: {response.status_code} {response.reason}",
                status_code=response.status_code,
            )
            if error.retryable:
                logger.warning("Lifelog API returned %s, will retry", response.status_code)
            raise error

        try:
            payload = response.json()
        except ValueError as exc:
            raise LifelogFetchError("Lifelog API returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise LifelogFetchError("Lifelog API returned an unexpected payload")
        return payload

    def _parse_entries(self, payload: dict[str, Any]) -> list[Lifelog]:
        raw_entries = (payload.get("data") or {}).get("lifelogs") or []
        try:
            entries = [Lifelog.model_validate(raw) for raw in raw_entries]
        except ValidationError as exc:
            counter("lifelogs.parse_failed")
            raise LifelogFetchError(f"Malformed lifelog in API response: {exc}") from exc

        return [
            entry
            if entry.markdown
            else entry.model_copy(update={"markdown": format_lifelog_markdown(entry, self.timezone)})
            for entry in entries
        ]
