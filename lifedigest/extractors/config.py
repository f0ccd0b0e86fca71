"""
Configuration layering for extractors and registry options.

Effective config = default_config < registry global_config < per-registration
override. The merge is shallow: a layer that sets "settings" replaces the whole
settings mapping, nested keys are never combined.

Registry options and per-extractor overrides may also come from a YAML file:

    registry:
      max_concurrency: 3
      extractor_timeout_ms: 45000
      continue_on_error: true
      global_config:
        priority: 10
    extractors:
      contacts:
        enabled: true
      summary:
        settings: {max_tokens: 800, temperature: 0.2}
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from lifedigest import config as app_config
from lifedigest.observability.logging import get_logger

logger = get_logger(__name__)


class RegistryConfigFileError(ValueError):
    """The registry YAML file is malformed or has invalid options."""


class RegistryOptions(BaseModel):
    """Execution policy for one ExtractorRegistry."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_concurrency: int = Field(default=app_config.REGISTRY_MAX_CONCURRENCY, gt=0)
    extractor_timeout_ms: float = Field(default=app_config.REGISTRY_EXTRACTOR_TIMEOUT_MS, gt=0)
    continue_on_error: bool = app_config.REGISTRY_CONTINUE_ON_ERROR
    global_config: dict[str, Any] | None = None


def merge_config(
    default: Mapping[str, Any] | None,
    global_config: Mapping[str, Any] | None = None,
    override: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Shallow-merge config layers; later layers win key by key."""
    merged: dict[str, Any] = {}
    for layer in (default, global_config, override):
        if layer:
            merged.update(layer)
    # Copy settings so a stored config never aliases a class-level default
    if isinstance(merged.get("settings"), Mapping):
        merged["settings"] = dict(merged["settings"])
    return merged


def load_registry_file(path: str | Path) -> tuple[RegistryOptions, dict[str, dict[str, Any]]]:
    """
    Read registry options and per-extractor overrides from YAML.

    Side Effects:
        - Reads the file from disk

    Returns:
        (RegistryOptions, {extractor_id: override})

    Raises:
        FileNotFoundError: path does not exist
        RegistryConfigFileError: YAML is invalid or options fail validation
    """
    config_path = Path(path)
    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise RegistryConfigFileError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise RegistryConfigFileError(f"{config_path} must contain a mapping at the top level")

    try:
        options = RegistryOptions(**(raw.get("registry") or {}))
    except (ValidationError, TypeError) as exc:
        raise RegistryConfigFileError(f"Invalid registry options in {config_path}: {exc}") from exc

    overrides_raw = raw.get("extractors") or {}
    if not isinstance(overrides_raw, Mapping):
        raise RegistryConfigFileError(f"'extractors' in {config_path} must be a mapping")

    overrides: dict[str, dict[str, Any]] = {}
    for extractor_id, override in overrides_raw.items():
        if not isinstance(override, Mapping):
            raise RegistryConfigFileError(
                f"Override for extractor '{extractor_id}' in {config_path} must be a mapping"
            )
        overrides[str(extractor_id)] = dict(override)

    logger.debug(
        "Loaded registry config from %s (%d extractor overrides)", config_path, len(overrides)
    )
    return options, overrides
