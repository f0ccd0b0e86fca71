"""Centralized configuration for the lifelog digest.

Re-exports everything from lifedigest.infrastructure.settings, then adds typed
constants for the extractor registry, LLM calls and lifelog fetching.
Environment variable overrides use safe defaults so the pipeline starts
without extra env configuration.
"""

from __future__ import annotations

import os

from lifedigest.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Extractor Registry ---
REGISTRY_MAX_CONCURRENCY: int = int(os.getenv("LIFEDIGEST_MAX_CONCURRENCY", "5"))
REGISTRY_EXTRACTOR_TIMEOUT_MS: float = float(os.getenv("LIFEDIGEST_EXTRACTOR_TIMEOUT_MS", "30000"))
REGISTRY_CONTINUE_ON_ERROR: bool = (
    os.getenv("LIFEDIGEST_CONTINUE_ON_ERROR", "true").lower() == "true"
)

# --- LLM ---
LLM_MAX_RETRIES: int = int(os.getenv("LIFEDIGEST_LLM_MAX_RETRIES", "3"))
LLM_DEFAULT_MAX_CONTENT_LENGTH: int = 12000

# --- Lifelog API ---
LIFELOG_PAGE_LIMIT: int = int(os.getenv("LIFEDIGEST_LIFELOG_PAGE_LIMIT", "100"))
LIFELOG_MAX_PAGES: int = int(os.getenv("LIFEDIGEST_LIFELOG_MAX_PAGES", "20"))
LIFELOG_REQUEST_TIMEOUT: float = float(os.getenv("LIFEDIGEST_LIFELOG_TIMEOUT", "30.0"))
LIFELOG_RETRY_MAX: int = int(os.getenv("LIFEDIGEST_LIFELOG_RETRY_MAX", "3"))
