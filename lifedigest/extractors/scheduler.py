"""
Priority-ordered, concurrency-bounded execution of registered extractors.

Enabled extractors are admitted highest priority first (ties keep registration
order) into a sliding window of at most max_concurrency in-flight tasks. As
soon as one settles the next queued extractor starts. Every extract() call is
bounded by extractor_timeout_ms.

With continue_on_error=True, failures become ExtractorFailure entries. With
continue_on_error=False, the first failure's exception propagates out of run(),
in-flight extractors are cancelled and completed results are discarded.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import deque
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from lifedigest.extractors.errors import ExtractorError, ExtractorTimeoutError
from lifedigest.extractors.report import ExecutionReport, ReportAggregator
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter, log_event

if TYPE_CHECKING:
    from lifedigest.extractors.base import ExtractorResult
    from lifedigest.extractors.registry import RegisteredExtractor

logger = get_logger(__name__)


def admission_order(entries: Sequence[RegisteredExtractor]) -> list[RegisteredExtractor]:
    """Enabled entries by descending priority; sorted() is stable so ties keep input order."""
    enabled = [entry for entry in entries if entry.config.get("enabled") is True]
    return sorted(enabled, key=lambda entry: entry.config.get("priority", 0), reverse=True)


class ExtractorScheduler:
    def __init__(self, max_concurrency: int, timeout_ms: float, continue_on_error: bool = True):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        self.max_concurrency = max_concurrency
        self.timeout_ms = timeout_ms
        self.continue_on_error = continue_on_error

    async def run(
        self, entries: Sequence[RegisteredExtractor], records: Sequence[Any], context: Any
    ) -> ExecutionReport:
        """
        Run every enabled entry once and aggregate the outcomes.

        Side Effects:
            - Starts one asyncio task per enabled extractor
            - Emits telemetry events and counters per outcome
        """
        queue = deque(admission_order(entries))
        aggregator = ReportAggregator(
            total_extractors=len(entries),
            disabled_count=len(entries) - len(queue),
            record_count=len(records),
        )
        in_flight: dict[asyncio.Task[ExtractorResult], str] = {}

        aggregator.start()
        try:
            while queue or in_flight:
                while queue and len(in_flight) < self.max_concurrency:
                    entry = queue.popleft()
                    task = asyncio.create_task(
                        self._run_one(entry, records, context),
                        name=f"extractor:{entry.extractor.id}",
                    )
                    in_flight[task] = entry.extractor.id

                done, _ = await asyncio.wait(set(in_flight), return_when=asyncio.FIRST_COMPLETED)

                # Settle in admission order so simultaneous completions are deterministic
                for task in [t for t in in_flight if t in done]:
                    extractor_id = in_flight.pop(task)
                    error = self._task_error(task, extractor_id)
                    if error is None:
                        aggregator.add_result(extractor_id, task.result())
                        continue

                    if not self.continue_on_error:
                        counter("registry.execute.aborted")
                        log_event(
                            "registry.execute.aborted",
                            extractor_id=extractor_id,
                            error_type=type(error).__name__,
                            cancelled=len(in_flight),
                        )
                        raise error

                    aggregator.add_failure(extractor_id, error)
        finally:
            for task in in_flight:
                task.cancel()
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)

        report = aggregator.build()
        log_event(
            "registry.execute.completed",
            total=report.summary.total_extractors,
            succeeded=report.summary.success_count,
            failed=report.summary.error_count,
            disabled=report.summary.disabled_count,
            total_time_ms=round(report.summary.total_time_ms, 1),
        )
        return report

    @staticmethod
    def _task_error(task: asyncio.Task[Any], extractor_id: str) -> BaseException | None:
        if task.cancelled():
            return ExtractorError(extractor_id, "Execution was cancelled")
        return task.exception()

    async def _run_one(
        self, entry: RegisteredExtractor, records: Sequence[Any], context: Any
    ) -> ExtractorResult:
        extractor = entry.extractor
        extractor_id = extractor.id
        start = time.perf_counter()
        deadline = asyncio.timeout(self.timeout_ms / 1000)

        try:
            async with deadline:
                # Sync raises and plain return values are handled like async ones
                outcome = extractor.extract(records, context, entry.config)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
        except TimeoutError as exc:
            if not deadline.expired():
                self._record_failure(extractor_id, exc, start)
                raise
            timeout_error = ExtractorTimeoutError(extractor_id, self.timeout_ms)
            counter("extractors.timeout")
            self._record_failure(extractor_id, timeout_error, start)
            raise timeout_error from None
        except Exception as exc:
            self._record_failure(extractor_id, exc, start)
            raise

        if not (hasattr(outcome, "html") and hasattr(outcome, "text")):
            error = ExtractorError(extractor_id, "Extractor returned an invalid result")
            self._record_failure(extractor_id, error, start)
            raise error

        counter("extractors.success")
        log_event(
            "extractor.succeeded",
            extractor_id=extractor_id,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return outcome

    @staticmethod
    def _record_failure(extractor_id: str, error: BaseException, start: float) -> None:
        counter("extractors.failed")
        log_event(
            "extractor.failed",
            extractor_id=extractor_id,
            error_type=type(error).__name__,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        logger.warning("Extractor %s failed: %s", extractor_id, error)
