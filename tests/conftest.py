"""
Shared fixtures for the lifelog digest tests.

Provides fake extractors, a fake Gemini text generator and lifelog
payloads so no test touches the network, Vertex AI or SMTP.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from lifedigest.extractors.base import AbstractExtractor, ExtractorResult, ResultMetadata
from lifedigest.infrastructure.env import DigestEnv
from lifedigest.lifelogs.models import Lifelog
from lifedigest.observability.telemetry import reset_telemetry


class FakeExtractor(AbstractExtractor):
    """Configurable extractor that records its lifecycle calls."""

    name = "Fake"
    description = "Test extractor"
    version = "0.0.1"

    def __init__(
        self,
        extractor_id: str,
        priority: float = 100,
        enabled: bool = True,
        delay: float = 0.0,
        error: BaseException | None = None,
        init_error: BaseException | None = None,
        cleanup_error: BaseException | None = None,
        events: list[tuple[str, str]] | None = None,
        settings: dict[str, Any] | None = None,
    ):
        self.id = extractor_id
        self.default_config = {
            "enabled": enabled,
            "priority": priority,
            "settings": settings or {},
        }
        self.delay = delay
        self.error = error
        self.init_error = init_error
        self.cleanup_error = cleanup_error
        self.events = events if events is not None else []
        self.init_calls = 0
        self.cleanup_calls = 0
        self.extract_calls = 0
        self.seen_configs: list[Any] = []
        self.seen_contexts: list[Any] = []

    async def initialize(self, context: Any) -> None:
        self.init_calls += 1
        if self.init_error is not None:
            raise self.init_error

    async def cleanup(self) -> None:
        self.cleanup_calls += 1
        if self.cleanup_error is not None:
            raise self.cleanup_error

    async def extract(self, records, context, config=None) -> ExtractorResult:
        self.extract_calls += 1
        self.seen_configs.append(config)
        self.seen_contexts.append(context)
        self.events.append(("start", self.id))
        if self.delay:
            await asyncio.sleep(self.delay)
        self.events.append(("end", self.id))
        if self.error is not None:
            raise self.error
        return ExtractorResult(
            html=f"<p>{self.id}</p>",
            text=self.id,
            metadata=ResultMetadata(record_count=len(records)),
        )


class FakeGenerator:
    """TextGenerator stand-in; returns a canned response and records prompts."""

    def __init__(self, response: str = "", error: BaseException | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def generate(self, prompt: str, **kwargs: Any) -> str:
        self.calls.append({"prompt": prompt, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


def lifelog_payload(
    lifelog_id: str = "log-1",
    title: str = "Planning sync",
    start: str = "2025-03-14T16:00:00Z",
    end: str = "2025-03-14T16:30:00Z",
) -> dict[str, Any]:
    """One lifelog as the API returns it (camelCase keys)."""
    return {
        "id": lifelog_id,
        "title": title,
        "startTime": start,
        "endTime": end,
        "contents": [
            {"type": "heading1", "content": title},
            {"type": "heading2", "content": "Release plan"},
            {
                "type": "blockquote",
                "content": "Um, I think we should, like, ship on Friday.",
                "speakerName": "You",
                "speakerIdentifier": "user",
                "startTime": "2025-03-14T16:01:00Z",
            },
            {
                "type": "blockquote",
                "content": "Sounds good, I will write the release notes.",
                "speakerName": "Alice",
                "startTime": "2025-03-14T16:02:00Z",
            },
        ],
    }


@pytest.fixture(autouse=True)
def _reset_telemetry():
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def make_extractor():
    return FakeExtractor


@pytest.fixture
def make_generator():
    return FakeGenerator


@pytest.fixture
def make_payload():
    return lifelog_payload


@pytest.fixture
def lifelogs() -> list[Lifelog]:
    return [
        Lifelog.model_validate(lifelog_payload()),
        Lifelog.model_validate(
            lifelog_payload(
                "log-2",
                "Lunch with Bob",
                start="2025-03-14T19:00:00Z",
                end="2025-03-14T19:45:00Z",
            )
        ),
    ]


@pytest.fixture
def digest_env() -> DigestEnv:
    return DigestEnv(
        limitless_api_key="test-key",
        google_cloud_project="test-project",
        timezone="UTC",
        from_email="digest@example.com",
        to_email="me@example.com",
    )
