"""Lifelog records, formatting helpers and the lifelog API client."""

from __future__ import annotations

from lifedigest.lifelogs.formatting import (
    DateWindow,
    format_conversations,
    format_lifelog_markdown,
    search_lifelogs,
    walk,
    window_for_day,
    yesterday_window,
)
from lifedigest.lifelogs.models import ContentNode, Lifelog

__all__ = [
    "ContentNode",
    "DateWindow",
    "Lifelog",
    "format_conversations",
    "format_lifelog_markdown",
    "search_lifelogs",
    "walk",
    "window_for_day",
    "yesterday_window",
]
