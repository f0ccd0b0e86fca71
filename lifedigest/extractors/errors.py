"""
Exception types for the extractor registry.

Registration, configuration-update and initialization failures are raised to
the caller. Execution failures (ExtractorError, ExtractorTimeoutError) are
caught per extractor by the scheduler and turned into report entries unless
the registry runs with continue_on_error=False.
"""

from __future__ import annotations

from typing import Any


class RegistryError(Exception):
    """Base class for registry-level failures."""


class RegistrationError(RegistryError):
    """Extractor rejected at registration (invalid shape or duplicate id)."""


class InvalidConfigError(RegistrationError):
    """Merged configuration failed the extractor's validate_config."""

    def __init__(self, extractor_id: str, reason: str):
        super().__init__(f"Invalid configuration for extractor '{extractor_id}': {reason}")
        self.extractor_id = extractor_id
        self.reason = reason


class ExtractorNotFoundError(RegistryError):
    def __init__(self, extractor_id: str):
        super().__init__(f"Extractor '{extractor_id}' not found")
        self.extractor_id = extractor_id


class InitializationError(RegistryError):
    """An extractor's initialize() failed; the registry stays uninitialized."""

    def __init__(self, extractor_id: str, cause: BaseException):
        super().__init__(f"Failed to initialize extractor '{extractor_id}': {cause}")
        self.extractor_id = extractor_id


class ExtractorError(Exception):
    """Domain failure raised from inside an extractor."""

    def __init__(
        self,
        extractor_id: str,
        message: str,
        original_error: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.extractor_id = extractor_id
        self.message = message
        self.original_error = original_error
        self.context = context or {}


class ExtractorTimeoutError(ExtractorError):
    def __init__(self, extractor_id: str, timeout_ms: float):
        super().__init__(extractor_id, f"Execution timed out after {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms
