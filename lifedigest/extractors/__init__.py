"""
Extractor registry and execution engine.

    lifedigest/extractors/
    ├── base.py            - Extractor protocol, AbstractExtractor, result types
    ├── config.py          - Config layering, RegistryOptions, YAML loading
    ├── errors.py          - Registry and extractor exceptions
    ├── registry.py        - ExtractorRegistry (register/initialize/execute/clear)
    ├── scheduler.py       - Priority-ordered, bounded-concurrency execution
    ├── report.py          - ExecutionReport and its aggregator
    └── implementations/   - Digest sections (summary, action items, ...)
"""

from __future__ import annotations

from lifedigest.extractors.base import (
    AbstractExtractor,
    Extractor,
    ExtractorConfig,
    ExtractorResult,
    ResultMetadata,
    is_extractor,
    validate_base_config,
)
from lifedigest.extractors.config import RegistryOptions, load_registry_file, merge_config
from lifedigest.extractors.errors import (
    ExtractorError,
    ExtractorNotFoundError,
    ExtractorTimeoutError,
    InitializationError,
    InvalidConfigError,
    RegistrationError,
    RegistryError,
)
from lifedigest.extractors.registry import ExtractorInfo, ExtractorRegistry, RegisteredExtractor
from lifedigest.extractors.report import (
    ExecutionReport,
    ExecutionSummary,
    ExtractorFailure,
    ExtractorOutcome,
    FailureContext,
)

__all__ = [
    "AbstractExtractor",
    "ExecutionReport",
    "ExecutionSummary",
    "Extractor",
    "ExtractorConfig",
    "ExtractorError",
    "ExtractorFailure",
    "ExtractorInfo",
    "ExtractorNotFoundError",
    "ExtractorOutcome",
    "ExtractorRegistry",
    "ExtractorResult",
    "ExtractorTimeoutError",
    "FailureContext",
    "InitializationError",
    "InvalidConfigError",
    "RegisteredExtractor",
    "RegistrationError",
    "RegistryError",
    "RegistryOptions",
    "ResultMetadata",
    "is_extractor",
    "load_registry_file",
    "merge_config",
    "validate_base_config",
]
