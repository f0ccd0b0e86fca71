"""
Execution report for one registry.execute() call.

Each attempted extractor lands in exactly one of results or errors; disabled
extractors appear only in summary.disabled_count. results keep completion
order, not priority order.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from lifedigest.extractors.base import ExtractorResult


@dataclass(frozen=True)
class ExtractorOutcome:
    extractor_id: str
    result: ExtractorResult


@dataclass(frozen=True)
class FailureContext:
    record_count: int
    timestamp: str


@dataclass(frozen=True)
class ExtractorFailure:
    """A failed or timed-out extractor, kept as data so the digest can still go out."""

    extractor_id: str
    message: str
    original_error: BaseException | None = None
    context: FailureContext | None = None


@dataclass(frozen=True)
class ExecutionSummary:
    total_time_ms: float
    total_extractors: int
    success_count: int
    error_count: int
    disabled_count: int


@dataclass
class ExecutionReport:
    results: list[ExtractorOutcome]
    errors: list[ExtractorFailure]
    summary: ExecutionSummary

    def result_for(self, extractor_id: str) -> ExtractorResult | None:
        for outcome in self.results:
            if outcome.extractor_id == extractor_id:
                return outcome.result
        return None

    def failure_for(self, extractor_id: str) -> ExtractorFailure | None:
        for failure in self.errors:
            if failure.extractor_id == extractor_id:
                return failure
        return None

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe view for APIs and logs (no rendered HTML)."""
        return {
            "results": [
                {
                    "extractor_id": outcome.extractor_id,
                    "record_count": outcome.result.metadata.record_count,
                    "processing_time_ms": outcome.result.metadata.processing_time_ms,
                    "warnings": list(outcome.result.metadata.warnings),
                }
                for outcome in self.results
            ],
            "errors": [
                {"extractor_id": failure.extractor_id, "message": failure.message}
                for failure in self.errors
            ],
            "summary": {
                "total_time_ms": self.summary.total_time_ms,
                "total_extractors": self.summary.total_extractors,
                "success_count": self.summary.success_count,
                "error_count": self.summary.error_count,
                "disabled_count": self.summary.disabled_count,
            },
        }


@dataclass
class ReportAggregator:
    """
    Collects outcomes while the scheduler runs and builds the final report.

    Side Effects:
        - start() / build() read the monotonic clock
    """

    total_extractors: int
    disabled_count: int
    record_count: int
    results: list[ExtractorOutcome] = field(default_factory=list)
    errors: list[ExtractorFailure] = field(default_factory=list)
    _started_at: float | None = None

    def start(self) -> None:
        self._started_at = time.perf_counter()

    def add_result(self, extractor_id: str, result: ExtractorResult) -> None:
        self.results.append(ExtractorOutcome(extractor_id=extractor_id, result=result))

    def add_failure(self, extractor_id: str, error: BaseException) -> ExtractorFailure:
        failure = ExtractorFailure(
            extractor_id=extractor_id,
            message=str(error) or error.__class__.__name__,
            original_error=error,
            context=FailureContext(
                record_count=self.record_count,
                timestamp=datetime.now(UTC).isoformat(),
            ),
        )
        self.errors.append(failure)
        return failure

    def build(self) -> ExecutionReport:
        if self._started_at is None:
            elapsed_ms = 0.0
        else:
            elapsed_ms = (time.perf_counter() - self._started_at) * 1000
        return ExecutionReport(
            results=list(self.results),
            errors=list(self.errors),
            summary=ExecutionSummary(
                total_time_ms=elapsed_ms,
                total_extractors=self.total_extractors,
                success_count=len(self.results),
                error_count=len(self.errors),
                disabled_count=self.disabled_count,
            ),
        )
