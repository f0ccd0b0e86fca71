"""
Extractor contract for the lifelog digest.

Every extractor turns the day's lifelog batch into one digest section. The
registry only relies on the Extractor protocol; AbstractExtractor supplies the
default configuration, base validation and a few helpers so concrete
extractors only implement extract().

Contract:
    - extract() must not mutate the records or the context it receives
    - extract() signals failure by raising, never by returning an "error" result
    - validate_config() is pure and returns True or a human-readable reason
    - cleanup() is best-effort; the registry logs and swallows its failures
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal, Protocol, TypedDict, TypeVar, runtime_checkable

from lifedigest.extractors.errors import ExtractorError

T = TypeVar("T")

ValidationResult = Literal[True] | str


class ExtractorConfig(TypedDict, total=False):
    """Effective configuration of one extractor.

    enabled: disabled extractors are never run
    priority: higher values are admitted first when concurrency is limited
    settings: extractor-specific options, replaced wholesale on override
    """

    enabled: bool
    priority: float
    settings: dict[str, Any] | None


@dataclass
class ResultMetadata:
    processing_time_ms: float | None = None
    record_count: int | None = None
    warnings: list[str] = field(default_factory=list)
    custom: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExtractorResult:
    """One rendered digest section: HTML for the email body plus a plain-text fallback."""

    html: str
    text: str
    metadata: ResultMetadata = field(default_factory=ResultMetadata)


@runtime_checkable
class Extractor(Protocol):
    """Structural contract the registry accepts.

    initialize() and cleanup() are optional and therefore not part of the
    protocol; the registry looks them up with getattr().
    """

    id: str
    name: str
    description: str
    version: str
    default_config: ExtractorConfig

    async def extract(
        self, records: Sequence[Any], context: Any, config: ExtractorConfig | None = None
    ) -> ExtractorResult: ...

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult: ...


def is_extractor(obj: object) -> bool:
    """Runtime shape check used at the registration boundary."""
    if obj is None:
        return False
    for attr in ("id", "name", "description", "version"):
        if not isinstance(getattr(obj, attr, None), str):
            return False
    if not isinstance(getattr(obj, "default_config", None), Mapping):
        return False
    return callable(getattr(obj, "extract", None)) and callable(
        getattr(obj, "validate_config", None)
    )


def validate_base_config(config: Mapping[str, Any]) -> ValidationResult:
    """Checks shared by every extractor: enabled, priority, settings."""
    if not isinstance(config.get("enabled"), bool):
        return "enabled must be a boolean"

    priority = config.get("priority")
    # bool is an int subclass; True is not a priority
    if isinstance(priority, bool) or not isinstance(priority, int | float) or priority < 0:
        return "priority must be a non-negative number"

    settings = config.get("settings")
    if settings is not None and not isinstance(settings, Mapping):
        return "settings must be an object"

    return True


class AbstractExtractor(ABC):
    """Base class with default config, base validation and error/timing helpers."""

    id: str
    name: str
    description: str
    version: str

    default_config: ExtractorConfig = {"enabled": True, "priority": 100, "settings": {}}

    async def initialize(self, context: Any) -> None:  # noqa: B027
        """One-time setup (clients, credentials). Default: nothing to do."""

    async def cleanup(self) -> None:  # noqa: B027
        """Release resources acquired in initialize(). Default: nothing to do."""

    @abstractmethod
    async def extract(
        self, records: Sequence[Any], context: Any, config: ExtractorConfig | None = None
    ) -> ExtractorResult: ...

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        return validate_base_config(config)

    def resolve_settings(self, config: Mapping[str, Any] | None) -> dict[str, Any]:
        """Settings to use for one run: the given config's, else the defaults."""
        source = config if config is not None else self.default_config
        return dict(source.get("settings") or {})

    def create_error(
        self,
        message: str,
        original_error: BaseException | None = None,
        **context: Any,
    ) -> ExtractorError:
        return ExtractorError(
            extractor_id=self.id,
            message=message,
            original_error=original_error,
            context={"timestamp": datetime.now(UTC).isoformat(), **context},
        )

    async def measure_time(self, fn: Callable[[], Awaitable[T]]) -> tuple[T, float]:
        """Await fn() and return (result, elapsed milliseconds)."""
        start = time.perf_counter()
        result = await fn()
        return result, (time.perf_counter() - start) * 1000
