"""
Unit tests for the digest API

Dependencies (env + runner) are overridden so no request reaches the
lifelog API, Vertex AI or SMTP.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lifedigest.api.app import app
from lifedigest.api.routes.digest import get_env, get_runner
from lifedigest.digest.renderer import render_digest
from lifedigest.digest.runner import DigestRun, run_digest
from lifedigest.extractors.base import ExtractorResult
from lifedigest.extractors.errors import InitializationError
from lifedigest.extractors.registry import ExtractorRegistry
from lifedigest.extractors.report import ReportAggregator
from lifedigest.infrastructure.env import DigestEnv
from lifedigest.lifelogs.client import LifelogFetchError
from lifedigest.lifelogs.formatting import window_for_day


class FakeRunner:
    def __init__(self, error: BaseException | None = None):
        self.error = error
        self.calls: list[dict] = []

    async def __call__(self, env, **kwargs) -> DigestRun:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        aggregator = ReportAggregator(total_extractors=2, disabled_count=0, record_count=1)
        aggregator.add_result("summary", ExtractorResult(html="<h2>Daily Summary</h2>", text="s"))
        aggregator.add_failure("topics", RuntimeError("model unavailable"))
        report = aggregator.build()
        return DigestRun(
            window=window_for_day(date(2025, 3, 14)),
            lifelog_count=1,
            report=report,
            digest=render_digest(report, "Friday, March 14, 2025"),
            sent=kwargs.get("send", False),
        )


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture
def client(digest_env, fake_runner):
    app.dependency_overrides[get_env] = lambda: digest_env
    app.dependency_overrides[get_runner] = lambda: fake_runner
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client, monkeypatch):
    monkeypatch.setenv("LIMITLESS_API_KEY", "k")
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "Lifelog Digest API"
    assert data["credentials"]["limitless_api_key"] is True
    assert data["credentials"]["google_cloud_project"] is False


def test_root_lists_endpoints(client):
    data = client.get("/").json()
    assert data["endpoints"] == {"health": "/health", "preview": "/preview", "run": "/run"}


def test_preview_returns_html_without_sending(client, fake_runner):
    response = client.get("/preview")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "<h2>Daily Summary</h2>" in response.text
    assert fake_runner.calls == [{"send": False}]


def test_preview_for_specific_day(client, fake_runner):
    response = client.get("/preview", params={"date": "2025-03-14"})

    assert response.status_code == 200
    assert fake_runner.calls == [
        {"send": False, "start": "2025-03-14 00:00:00", "end": "2025-03-14 23:59:59"}
    ]


def test_run_sends_and_returns_report(client, fake_runner):
    response = client.post("/run")

    assert response.status_code == 200
    data = response.json()
    assert data["sent"] is True
    assert data["day"] == "2025-03-14"
    assert data["subject"] == "Daily Digest for Friday, March 14, 2025"
    assert data["report"]["summary"]["success_count"] == 1
    assert data["report"]["errors"] == [{"extractor_id": "topics", "message": "model unavailable"}]
    assert fake_runner.calls[0]["send"] is True


def test_invalid_date_is_sanitized(client):
    response = client.get("/preview", params={"date": "yesterday-ish"})

    assert response.status_code == 422
    assert response.json()["invalid_fields"] == ["date"]


def test_missing_api_key_is_503(client):
    app.dependency_overrides[get_env] = lambda: DigestEnv()

    response = client.get("/preview")

    assert response.status_code == 503
    assert "LIMITLESS_API_KEY" in response.json()["detail"]


@pytest.mark.parametrize(
    "error, status_code",
    [
        (LifelogFetchError("Failed to fetch lifelogs: 500 Internal Server Error", 500), 502),
        (InitializationError("summary", RuntimeError("no project")), 503),
    ],
)
def test_run_failures_map_to_status(client, error, status_code):
    app.dependency_overrides[get_runner] = lambda: FakeRunner(error)

    response = client.post("/run")

    assert response.status_code == status_code


def test_aborted_run_maps_to_502(client, make_extractor, lifelogs):
    registry = ExtractorRegistry(continue_on_error=False)
    registry.register(make_extractor("boom", error=RuntimeError("upstream token abc123 rejected")))
    lifelog_client = MagicMock()
    lifelog_client.fetch.return_value = lifelogs

    async def aborting_runner(env, **kwargs):
        return await run_digest(env, registry=registry, client=lifelog_client, **kwargs)

    app.dependency_overrides[get_runner] = lambda: aborting_runner

    for response in (client.get("/preview"), client.post("/run")):
        assert response.status_code == 502
        assert response.json()["detail"] == "Digest aborted by an extractor failure"
        assert "abc123" not in response.text
