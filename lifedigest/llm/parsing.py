"""Tolerant parsing of model JSON output."""

from __future__ import annotations

import json
import re
from typing import Any

from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter

logger = get_logger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def parse_json_response(response_text: str | None, counter_prefix: str = "llm") -> Any | None:
    """
    Parse a JSON payload from model output.

    Strips markdown code fences; returns None (and bumps
    "<counter_prefix>.parse_failed") when the text is not valid JSON.
    """
    if not response_text:
        counter(f"{counter_prefix}.parse_failed")
        return None

    json_text = response_text.strip()
    if json_text.startswith("```"):
        counter(f"{counter_prefix}.code_fence_fallback")
        json_text = _FENCE_OPEN.sub("", json_text)
        json_text = _FENCE_CLOSE.sub("", json_text)

    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        counter(f"{counter_prefix}.parse_failed")
        logger.warning("Failed to parse LLM JSON response: %s", e)
        return None
