"""
Unit tests for ExtractorRegistry

Tests cover:
- Registration gate (shape check, duplicate ids, config validation)
- Config layering and update_config
- Initialization (implicit, concurrent, failure handling)
- Execution accounting, failure isolation, abort, timeouts
- Priority admission order
- unregister / clear lifecycle
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest

from lifedigest.extractors.config import RegistryOptions
from lifedigest.extractors.errors import (
    ExtractorNotFoundError,
    InitializationError,
    InvalidConfigError,
    RegistrationError,
)
from lifedigest.extractors import registry as registry_module
from lifedigest.extractors.registry import ExtractorRegistry
from lifedigest.observability.telemetry import get_counter


def _ids(registry: ExtractorRegistry) -> list[str]:
    return [info.id for info in registry.get_registered_extractors()]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def test_register_stores_merged_config(make_extractor):
    registry = ExtractorRegistry(RegistryOptions(global_config={"priority": 5}))
    registry.register(make_extractor("a", priority=100, settings={"x": 1}), {"enabled": False})

    [info] = registry.get_registered_extractors()
    assert info.id == "a"
    assert dict(info.config) == {"enabled": False, "priority": 5, "settings": {"x": 1}}
    assert info.initialized is False
    assert "a" in registry
    assert len(registry) == 1


def test_register_rejects_non_extractor():
    registry = ExtractorRegistry()
    with pytest.raises(RegistrationError, match="does not implement the Extractor interface"):
        registry.register(object())  # type: ignore[arg-type]
    assert len(registry) == 0


def test_duplicate_id_rejected(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("dup"))

    with pytest.raises(RegistrationError, match="Extractor with ID 'dup' is already registered"):
        registry.register(make_extractor("dup", priority=1))

    assert _ids(registry) == ["dup"]
    assert registry.get_extractor("dup").config["priority"] == 100


def test_invalid_override_rejected_and_not_stored(make_extractor):
    registry = ExtractorRegistry()

    with pytest.raises(InvalidConfigError) as exc_info:
        registry.register(make_extractor("bad"), {"priority": -3})

    assert exc_info.value.extractor_id == "bad"
    assert "priority must be a non-negative number" in str(exc_info.value)
    assert "bad" not in _ids(registry)
    assert get_counter("registry.invalid_config") == 1


def test_falsy_validation_verdict_gets_generic_reason(make_extractor):
    extractor = make_extractor("picky")
    extractor.validate_config = lambda config: ""  # type: ignore[method-assign]
    registry = ExtractorRegistry()

    with pytest.raises(InvalidConfigError, match="validation failed"):
        registry.register(extractor)


def test_options_keyword_overrides_are_validated():
    registry = ExtractorRegistry(RegistryOptions(max_concurrency=4), continue_on_error=False)
    assert registry.options.max_concurrency == 4
    assert registry.options.continue_on_error is False

    with pytest.raises(ValueError):
        ExtractorRegistry(max_concurrency=0)


def test_snapshot_config_is_read_only(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("a"))

    [info] = registry.get_registered_extractors()
    with pytest.raises(TypeError):
        info.config["enabled"] = False  # type: ignore[index]
    assert registry.get_extractor("a").config["enabled"] is True


# ---------------------------------------------------------------------------
# update_config
# ---------------------------------------------------------------------------


def test_update_config_merges_partial(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("a", priority=10, settings={"k": "v"}))

    registry.update_config("a", {"priority": 70})

    config = registry.get_extractor("a").config
    assert config == {"enabled": True, "priority": 70, "settings": {"k": "v"}}


def test_update_config_invalid_keeps_previous(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("a", priority=10))

    with pytest.raises(InvalidConfigError):
        registry.update_config("a", {"enabled": "sometimes"})

    assert registry.get_extractor("a").config["enabled"] is True


def test_update_config_unknown_id():
    registry = ExtractorRegistry()
    with pytest.raises(ExtractorNotFoundError, match="Extractor 'ghost' not found"):
        registry.update_config("ghost", {"enabled": False})


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_execute_initializes_once(make_extractor):
    extractor = make_extractor("a")
    registry = ExtractorRegistry()
    registry.register(extractor)

    await registry.execute([], {"ctx": 1})
    await registry.execute([], {"ctx": 1})

    assert extractor.init_calls == 1
    assert registry.initialized
    assert registry.get_extractor("a").initialized


@pytest.mark.asyncio
async def test_initialize_covers_disabled_extractors(make_extractor):
    disabled = make_extractor("off", enabled=False)
    registry = ExtractorRegistry()
    registry.register(disabled)

    await registry.initialize(None)

    assert disabled.init_calls == 1


@pytest.mark.asyncio
async def test_initialization_failure_wraps_cause(make_extractor):
    cause = RuntimeError("no credentials")
    registry = ExtractorRegistry()
    registry.register(make_extractor("ok"))
    registry.register(make_extractor("broken", init_error=cause))

    with pytest.raises(InitializationError) as exc_info:
        await registry.execute([], None)

    assert exc_info.value.extractor_id == "broken"
    assert exc_info.value.__cause__ is cause
    assert str(exc_info.value) == "Failed to initialize extractor 'broken': no credentials"
    assert not registry.initialized
    assert get_counter("registry.initialize.failed") == 1


@pytest.mark.asyncio
async def test_initialize_retry_only_repeats_pending(make_extractor):
    good = make_extractor("good")
    flaky = make_extractor("flaky", init_error=RuntimeError("first try"))
    registry = ExtractorRegistry()
    registry.register(good)
    registry.register(flaky)

    with pytest.raises(InitializationError):
        await registry.initialize(None)

    flaky.init_error = None
    await registry.initialize(None)

    assert registry.initialized
    assert flaky.init_calls == 2
    assert good.init_calls == 1


@pytest.mark.asyncio
async def test_register_after_initialize_sets_up_new_entry(make_extractor):
    first = make_extractor("first")
    late = make_extractor("late")
    registry = ExtractorRegistry()
    registry.register(first)
    await registry.initialize(None)

    registry.register(late)
    assert not registry.initialized
    await registry.execute([], None)

    assert first.init_calls == 1
    assert late.init_calls == 1
    assert late.extract_calls == 1


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_summary_accounts_for_every_extractor(make_extractor):
    registry = ExtractorRegistry(max_concurrency=2)
    registry.register(make_extractor("ok1"))
    registry.register(make_extractor("ok2", priority=50))
    registry.register(make_extractor("fails", error=ValueError("nope")))
    registry.register(make_extractor("off", enabled=False))

    report = await registry.execute(["r1", "r2"], None)
    summary = report.summary

    assert summary.total_extractors == 4
    assert summary.success_count == 2
    assert summary.error_count == 1
    assert summary.disabled_count == 1
    assert (
        summary.success_count + summary.error_count + summary.disabled_count
        == summary.total_extractors
    )
    assert summary.total_time_ms >= 0


@pytest.mark.asyncio
async def test_disabled_extractor_never_attempted(make_extractor):
    disabled = make_extractor("off", enabled=False)
    registry = ExtractorRegistry()
    registry.register(make_extractor("on"))
    registry.register(disabled)

    report = await registry.execute(["r"], None)

    assert disabled.extract_calls == 0
    assert report.result_for("off") is None
    assert report.failure_for("off") is None
    assert "off" not in registry.execution_order()


@pytest.mark.asyncio
async def test_failure_is_isolated(make_extractor):
    registry = ExtractorRegistry(continue_on_error=True)
    for name in ("a", "b", "c"):
        registry.register(make_extractor(name))
    registry.register(make_extractor("boom", error=ValueError("kaboom")))

    report = await registry.execute(["r"], None)

    assert sorted(outcome.extractor_id for outcome in report.results) == ["a", "b", "c"]
    [failure] = report.errors
    assert failure.extractor_id == "boom"
    assert failure.message == "kaboom"
    assert isinstance(failure.original_error, ValueError)
    assert failure.context.record_count == 1
    assert get_counter("extractors.failed") == 1
    assert get_counter("extractors.success") == 3


@pytest.mark.asyncio
async def test_sync_raise_inside_extract_is_isolated(make_extractor):
    class SyncBoom:
        id = "sync"
        name = "Sync"
        description = "Raises before returning an awaitable"
        version = "1"
        default_config = {"enabled": True, "priority": 1}

        def extract(self, records, context, config=None):
            raise RuntimeError("sync failure")

        def validate_config(self, config):
            return True

    registry = ExtractorRegistry()
    registry.register(make_extractor("ok"))
    registry.register(SyncBoom())  # type: ignore[arg-type]

    report = await registry.execute([], None)

    assert [outcome.extractor_id for outcome in report.results] == ["ok"]
    assert report.failure_for("sync").message == "sync failure"


@pytest.mark.asyncio
async def test_abort_on_error_raises_first_failure(make_extractor):
    registry = ExtractorRegistry(continue_on_error=False, max_concurrency=1)
    registry.register(make_extractor("first", priority=200))
    registry.register(make_extractor("boom", priority=100, error=ValueError("stop here")))
    never = make_extractor("never", priority=1)
    registry.register(never)

    with pytest.raises(ValueError, match="stop here"):
        await registry.execute(["r"], None)

    assert never.extract_calls == 0
    assert get_counter("registry.execute.aborted") == 1


@pytest.mark.asyncio
async def test_abort_cancels_in_flight(make_extractor):
    events: list[tuple[str, str]] = []
    registry = ExtractorRegistry(continue_on_error=False, max_concurrency=2)
    registry.register(make_extractor("slow", priority=10, delay=1.0, events=events))
    registry.register(
        make_extractor("boom", priority=5, delay=0.01, error=RuntimeError("x"), events=events)
    )

    with pytest.raises(RuntimeError):
        await registry.execute([], None)

    assert ("start", "slow") in events
    assert ("end", "slow") not in events


@pytest.mark.asyncio
async def test_timeout_is_isolated(make_extractor):
    registry = ExtractorRegistry(extractor_timeout_ms=50)
    registry.register(make_extractor("hangs", delay=5))
    registry.register(make_extractor("quick"))

    report = await registry.execute([], None)

    assert report.result_for("quick") is not None
    failure = report.failure_for("hangs")
    assert failure is not None
    assert "timed out" in failure.message
    assert failure.message == "Execution timed out after 50ms"
    assert get_counter("extractors.timeout") == 1


@pytest.mark.asyncio
async def test_own_timeout_error_is_not_relabelled(make_extractor):
    registry = ExtractorRegistry(extractor_timeout_ms=5000)
    registry.register(make_extractor("upstream", error=TimeoutError("upstream slow")))

    report = await registry.execute([], None)

    assert report.failure_for("upstream").message == "upstream slow"
    assert get_counter("extractors.timeout") == 0


@pytest.mark.asyncio
async def test_invalid_result_is_a_failure(make_extractor):
    extractor = make_extractor("weird")

    async def returns_none(records, context, config=None):
        return None

    extractor.extract = returns_none  # type: ignore[method-assign]
    registry = ExtractorRegistry()
    registry.register(extractor)

    report = await registry.execute([], None)

    assert report.failure_for("weird").message == "Extractor returned an invalid result"


@pytest.mark.asyncio
async def test_priority_order_of_admission(make_extractor):
    events: list[tuple[str, str]] = []
    registry = ExtractorRegistry(max_concurrency=1)
    registry.register(make_extractor("A", priority=50, events=events))
    registry.register(make_extractor("B", priority=150, events=events))
    registry.register(make_extractor("C", priority=100, events=events))

    await registry.execute([], None)

    starts = [extractor_id for kind, extractor_id in events if kind == "start"]
    assert starts == ["B", "C", "A"]
    assert registry.execution_order() == ["B", "C", "A"]


@pytest.mark.asyncio
async def test_equal_priority_keeps_registration_order(make_extractor):
    events: list[tuple[str, str]] = []
    registry = ExtractorRegistry(max_concurrency=1)
    for name in ("x", "y", "z"):
        registry.register(make_extractor(name, priority=10, events=events))

    await registry.execute([], None)

    assert [i for kind, i in events if kind == "start"] == ["x", "y", "z"]


@pytest.mark.asyncio
async def test_empty_batch_still_runs(make_extractor):
    extractor = make_extractor("a")
    registry = ExtractorRegistry()
    registry.register(extractor)

    report = await registry.execute([], None)

    assert extractor.extract_calls == 1
    assert report.result_for("a").metadata.record_count == 0


@pytest.mark.asyncio
async def test_empty_registry_reports_zero():
    report = await ExtractorRegistry().execute(["r"], None)
    assert report.results == []
    assert report.errors == []
    assert report.summary.total_extractors == 0


@pytest.mark.asyncio
async def test_extractor_receives_effective_config_and_context(make_extractor):
    extractor = make_extractor("a", settings={"k": 1})
    registry = ExtractorRegistry()
    registry.register(extractor, {"settings": {"k": 2}})
    context = {"user": "me"}

    await registry.execute(["r"], context)

    assert extractor.seen_configs[0]["settings"] == {"k": 2}
    assert extractor.seen_contexts[0] is context


@pytest.mark.asyncio
async def test_update_config_applies_to_next_execute(make_extractor):
    extractor = make_extractor("a")
    registry = ExtractorRegistry()
    registry.register(extractor)

    registry.update_config("a", {"enabled": False})
    report = await registry.execute([], None)

    assert extractor.extract_calls == 0
    assert report.summary.disabled_count == 1


# ---------------------------------------------------------------------------
# unregister / clear
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_unregister(make_extractor):
    extractor = make_extractor("a")
    registry = ExtractorRegistry()
    registry.register(extractor)

    assert await registry.unregister("a") is True
    assert await registry.unregister("a") is False
    assert extractor.cleanup_calls == 1
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_unregister_swallows_cleanup_failure(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("a", cleanup_error=RuntimeError("leak")))

    assert await registry.unregister("a") is True
    assert "a" not in registry


@pytest.mark.asyncio
async def test_sync_cleanup_is_not_a_failure():
    class SyncCleanup:
        id = "sync"
        name = "Sync"
        description = "Releases resources synchronously"
        version = "1"
        default_config = {"enabled": True, "priority": 1}

        def __init__(self):
            self.cleaned = False

        async def extract(self, records, context, config=None):
            raise AssertionError("not executed")

        def validate_config(self, config):
            return True

        def cleanup(self):
            self.cleaned = True

    extractor = SyncCleanup()
    registry = ExtractorRegistry()
    registry.register(extractor)  # type: ignore[arg-type]

    with patch.object(registry_module, "logger") as logger:
        assert await registry.unregister("sync") is True

    assert extractor.cleaned is True
    logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_clear_cleans_up_everything(make_extractor):
    a = make_extractor("a")
    b = make_extractor("b", cleanup_error=OSError("socket already closed"))
    registry = ExtractorRegistry()
    registry.register(a)
    registry.register(b)
    await registry.initialize(None)

    await registry.clear()

    assert a.cleanup_calls == 1
    assert b.cleanup_calls == 1
    assert len(registry) == 0
    assert not registry.initialized


@pytest.mark.asyncio
async def test_reregister_after_clear(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("a"))
    await registry.clear()

    registry.register(make_extractor("a"))
    report = await registry.execute([], None)

    assert report.summary.success_count == 1


@pytest.mark.asyncio
async def test_cancelled_execute_propagates(make_extractor):
    registry = ExtractorRegistry()
    registry.register(make_extractor("slow", delay=5))

    task = asyncio.create_task(registry.execute([], None))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
