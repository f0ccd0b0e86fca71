"""Application-wide settings read from the environment."""

from __future__ import annotations

import os

# API Configuration
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# Google Cloud / Gemini
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-001")
GEMINI_LOCATION = os.getenv("GEMINI_LOCATION", "us-central1")

# Lifelog API
LIFELOG_API_URL = os.getenv("LIFELOG_API_URL", "https://api.limitless.ai")

# Digest
DIGEST_TIMEZONE = os.getenv("DIGEST_TIMEZONE", "America/Los_Angeles")
EXTRACTOR_CONFIG_FILE = os.getenv("LIFEDIGEST_EXTRACTOR_CONFIG")
