"""
Lifelog text helpers: flattening, markdown/transcript rendering, search and
date windows.

All functions are pure. Times are shown in the given IANA timezone when one
is passed, otherwise in the timezone the API reported.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, date, datetime, timedelta
from typing import NamedTuple
from zoneinfo import ZoneInfo

from lifedigest.lifelogs.models import ContentNode, Lifelog

WINDOW_FORMAT = "%Y-%m-%d %H:%M:%S"


class DateWindow(NamedTuple):
    """Local start/end strings for the lifelog API plus the calendar day they cover."""

    start: str
    end: str
    day: date


def walk(nodes: Iterable[ContentNode]) -> list[ContentNode]:
    """Flatten nested content nodes depth-first (parent before its children)."""
    flat: list[ContentNode] = []
    for node in nodes:
        flat.append(node)
        if node.children:
            flat.extend(walk(node.children))
    return flat


def _localize(moment: datetime, timezone: str | None) -> datetime:
    if timezone is None:
        return moment
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(ZoneInfo(timezone))


def format_lifelog_markdown(entry: Lifelog, timezone: str | None = None) -> str:
    start = _localize(entry.start_time, timezone).strftime("%Y-%m-%d %H:%M")
    end = _localize(entry.end_time, timezone).strftime("%Y-%m-%d %H:%M")
    parts = [f"# {entry.title}\n\n", f"Time: {start} - {end}\n\n"]

    for node in entry.contents:
        if node.is_heading:
            parts.append(f"\n## {node.content}\n\n")
        elif node.type == "blockquote":
            speaker = node.speaker_name or "Unknown"
            spoken_at = (
                _localize(node.start_time, timezone).strftime("%H:%M:%S") if node.start_time else ""
            )
            parts.append(f"> {speaker} ({spoken_at}): {node.content}\n\n")

    return "".join(parts)


def format_conversations(
    lifelogs: Sequence[Lifelog], max_length: int, timezone: str | None = None
) -> str:
    """
    Transcript text for LLM prompts, one block per conversation.

    Lines are "speaker: content" sorted by start time (nodes without a time
    use the conversation start). The joined text is cut at max_length.
    """
    blocks = []
    for log in lifelogs:
        nodes = [node for node in walk(log.contents) if node.content]
        nodes.sort(key=lambda node: node.start_time or log.start_time)
        lines = "\n".join(f"{node.speaker_name or 'Unknown'}: {node.content}" for node in nodes)
        start = _localize(log.start_time, timezone).strftime("%H:%M:%S")
        end = _localize(log.end_time, timezone).strftime("%H:%M:%S")
        blocks.append(
            f"Conversation: {log.title} ({log.duration_minutes} minutes)\n"
            f"Start: {start}\n"
            f"End: {end}\n\n"
            f"{lines}\n\n"
            "---"
        )
    return "\n\n".join(blocks)[:max_length]


def search_lifelogs(
    lifelogs: Sequence[Lifelog],
    query: str | None = None,
    topics: Sequence[str] | None = None,
    speakers: Sequence[str] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Lifelog]:
    """
    Filter lifelogs; every given criterion must match.

    topics match heading text and speakers match speaker names, both by
    case-insensitive substring. query matches title plus all node content.
    """
    matches = []
    for entry in lifelogs:
        if start is not None and entry.start_time < start:
            continue
        if end is not None and entry.end_time > end:
            continue

        if topics:
            headings = [node.content.lower() for node in entry.contents if node.is_heading]
            if not any(topic.lower() in heading for topic in topics for heading in headings):
                continue

        if speakers:
            names = [node.speaker_name.lower() for node in entry.contents if node.speaker_name]
            if not any(speaker.lower() in name for speaker in speakers for name in names):
                continue

        if query:
            haystack = " ".join([entry.title, *(node.content for node in entry.contents)]).lower()
            if query.lower() not in haystack:
                continue

        matches.append(entry)
    return matches


def window_for_day(day: date) -> DateWindow:
    start = datetime.combine(day, datetime.min.time())
    end = start + timedelta(days=1) - timedelta(seconds=1)
    return DateWindow(start=start.strftime(WINDOW_FORMAT), end=end.strftime(WINDOW_FORMAT), day=day)


def yesterday_window(timezone: str, now: datetime | None = None) -> DateWindow:
    """The previous calendar day in the given timezone, as local API strings."""
    current = now or datetime.now(UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)
    local_today = current.astimezone(ZoneInfo(timezone)).date()
    return window_for_day(local_today - timedelta(days=1))
