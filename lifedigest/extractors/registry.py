"""
ExtractorRegistry - owns extractor instances, their effective configs and lifecycle.

Lifecycle:
    register() -> initialize(context) -> execute(records, context) -> clear()

register() and update_config() validate the merged configuration before
storing it, so an invalid config is never observable. initialize() runs every
pending setup concurrently and only flips the registry to initialized when
all of them succeed. execute() initializes implicitly and hands the enabled
extractors to ExtractorScheduler.

Registry mutations (register, unregister, update_config, clear) must not be
run concurrently with each other or with execute(); callers serialize them.

Usage:
    registry = ExtractorRegistry(RegistryOptions(max_concurrency=3))
    registry.register(SummaryExtractor())
    report = await registry.execute(lifelogs, env)
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from lifedigest.extractors.base import Extractor, ExtractorConfig, is_extractor
from lifedigest.extractors.config import RegistryOptions, merge_config
from lifedigest.extractors.errors import (
    ExtractorNotFoundError,
    InitializationError,
    InvalidConfigError,
    RegistrationError,
)
from lifedigest.extractors.report import ExecutionReport
from lifedigest.extractors.scheduler import ExtractorScheduler, admission_order
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


@dataclass
class RegisteredExtractor:
    """Registry-owned record: the extractor instance plus its lifecycle state."""

    extractor: Extractor
    config: ExtractorConfig
    initialized: bool
    registered_at: datetime


@dataclass(frozen=True)
class ExtractorInfo:
    """Read-only snapshot returned by get_registered_extractors()."""

    id: str
    name: str
    description: str
    version: str
    config: Mapping[str, Any]
    initialized: bool
    registered_at: datetime


class ExtractorRegistry:
    def __init__(self, options: RegistryOptions | None = None, **overrides: Any):
        """
        Args:
            options: Execution policy; defaults come from lifedigest.config
            **overrides: Individual RegistryOptions fields, applied on top of options
        """
        base = options or RegistryOptions()
        self.options = RegistryOptions(**{**base.model_dump(), **overrides}) if overrides else base
        self._extractors: dict[str, RegisteredExtractor] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def __len__(self) -> int:
        return len(self._extractors)

    def __contains__(self, extractor_id: object) -> bool:
        return extractor_id in self._extractors

    def register(
        self, extractor: Extractor, config_override: Mapping[str, Any] | None = None
    ) -> None:
        """
        Validate and store an extractor.

        Raises:
            RegistrationError: not an extractor, or the id is already registered
            InvalidConfigError: merged config rejected by validate_config

        Side Effects:
            - Adds an entry to the registry (initialized=False)
        """
        if not is_extractor(extractor):
            raise RegistrationError(
                f"Invalid extractor: {extractor!r} does not implement the Extractor interface"
            )

        extractor_id = extractor.id
        if extractor_id in self._extractors:
            raise RegistrationError(f"Extractor with ID '{extractor_id}' is already registered")

        config = merge_config(extractor.default_config, self.options.global_config, config_override)
        self._validate(extractor, config)

        self._extractors[extractor_id] = RegisteredExtractor(
            extractor=extractor,
            config=config,  # type: ignore[typeddict-item]
            initialized=False,
            registered_at=datetime.now(UTC),
        )
        # New entries need setup before the next execute()
        self._initialized = False
        counter("registry.registered")
        log_event(
            "registry.extractor_registered",
            extractor_id=extractor_id,
            version=extractor.version,
            enabled=config.get("enabled"),
            priority=config.get("priority"),
        )

    async def unregister(self, extractor_id: str) -> bool:
        """
        Remove an extractor after best-effort cleanup().

        Returns:
            False when the id is unknown, True otherwise
        """
        entry = self._extractors.get(extractor_id)
        if entry is None:
            return False

        await self._cleanup(entry)
        del self._extractors[extractor_id]
        log_event("registry.extractor_unregistered", extractor_id=extractor_id)
        return True

    async def initialize(self, context: Any) -> None:
        """
        Run initialize(context) for every extractor not yet initialized.

        Setups run concurrently. The first failure cancels the remaining setups
        and raises InitializationError; extractors that finished before it keep
        their initialized flag, so a retry only repeats the pending ones.

        Side Effects:
            - Calls each pending extractor's initialize(context)
            - Marks entries (and the registry) initialized on success
        """
        pending = [entry for entry in self._extractors.values() if not entry.initialized]
        tasks: dict[asyncio.Task[None], RegisteredExtractor] = {
            asyncio.create_task(
                self._initialize_one(entry, context), name=f"init:{entry.extractor.id}"
            ): entry
            for entry in pending
        }

        try:
            with time_block("registry.initialize.latency"):
                while tasks:
                    done, _ = await asyncio.wait(
                        set(tasks), return_when=asyncio.FIRST_EXCEPTION
                    )
                    for task in [t for t in tasks if t in done]:
                        entry = tasks.pop(task)
                        if task.cancelled():
                            error: BaseException | None = RuntimeError("initialization was cancelled")
                        else:
                            error = task.exception()
                        if error is not None:
                            extractor_id = entry.extractor.id
                            counter("registry.initialize.failed")
                            log_event(
                                "registry.initialize_failed",
                                extractor_id=extractor_id,
                                error_type=type(error).__name__,
                            )
                            raise InitializationError(extractor_id, error) from error
        finally:
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

        self._initialized = True
        log_event("registry.initialized", extractors=len(self._extractors))

    @staticmethod
    async def _initialize_one(entry: RegisteredExtractor, context: Any) -> None:
        setup = getattr(entry.extractor, "initialize", None)
        if callable(setup):
            outcome = setup(context)
            if inspect.isawaitable(outcome):
                await outcome
        entry.initialized = True

    async def execute(self, records: Sequence[Any], context: Any) -> ExecutionReport:
        """
        Run every enabled extractor over the batch and return the report.

        Raises:
            InitializationError: implicit initialize() failed
            Exception: the first extractor failure, when continue_on_error is False
        """
        if not self._initialized:
            await self.initialize(context)

        scheduler = ExtractorScheduler(
            max_concurrency=self.options.max_concurrency,
            timeout_ms=self.options.extractor_timeout_ms,
            continue_on_error=self.options.continue_on_error,
        )
        with time_block("registry.execute.latency"):
            return await scheduler.run(list(self._extractors.values()), records, context)

    def update_config(self, extractor_id: str, partial: Mapping[str, Any]) -> None:
        """
        Merge partial onto the stored config; commit only if it validates.

        Raises:
            ExtractorNotFoundError: unknown id
            InvalidConfigError: merged config rejected, stored config unchanged
        """
        entry = self._extractors.get(extractor_id)
        if entry is None:
            raise ExtractorNotFoundError(extractor_id)

        config = merge_config(entry.config, partial)
        self._validate(entry.extractor, config)
        entry.config = config  # type: ignore[assignment]
        log_event("registry.config_updated", extractor_id=extractor_id, keys=sorted(partial))

    def get_registered_extractors(self) -> list[ExtractorInfo]:
        return [
            ExtractorInfo(
                id=entry.extractor.id,
                name=entry.extractor.name,
                description=entry.extractor.description,
                version=entry.extractor.version,
                config=MappingProxyType(dict(entry.config)),
                initialized=entry.initialized,
                registered_at=entry.registered_at,
            )
            for entry in self._extractors.values()
        ]

    def get_extractor(self, extractor_id: str) -> RegisteredExtractor | None:
        return self._extractors.get(extractor_id)

    def execution_order(self) -> list[str]:
        """Ids of enabled extractors in the order they would be admitted."""
        return [entry.extractor.id for entry in admission_order(list(self._extractors.values()))]

    async def clear(self) -> None:
        """
        Clean up every extractor concurrently and empty the registry.

        Side Effects:
            - Calls cleanup() on all extractors (failures logged, not raised)
            - Resets the initialized flag
        """
        entries = list(self._extractors.values())
        await asyncio.gather(*(self._cleanup(entry) for entry in entries))
        self._extractors.clear()
        self._initialized = False
        log_event("registry.cleared", extractors=len(entries))

    @staticmethod
    def _validate(extractor: Extractor, config: Mapping[str, Any]) -> None:
        verdict = extractor.validate_config(config)
        if verdict is not True:
            counter("registry.invalid_config")
            reason = verdict if isinstance(verdict, str) and verdict else "validation failed"
            raise InvalidConfigError(extractor.id, reason)

    @staticmethod
    async def _cleanup(entry: RegisteredExtractor) -> None:
        teardown = getattr(entry.extractor, "cleanup", None)
        if not callable(teardown):
            return
        try:
            outcome = teardown()
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            logger.warning("Error cleaning up extractor %s: %s", entry.extractor.id, exc)
