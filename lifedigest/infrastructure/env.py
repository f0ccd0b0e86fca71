"""
Centralized environment loader for the digest pipeline.

Entry points call ensure_env_loaded() before reading credentials; the
resulting DigestEnv is the execution context handed to every extractor.

Side Effects:
    - Loads .env file from project root (once per process)

Usage:
    from lifedigest.infrastructure.env import DigestEnv

    env = DigestEnv.from_environ()
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from lifedigest.infrastructure import settings

_ENV_LOADED = False


class EnvironmentConfigError(RuntimeError):
    """Raised when a required environment variable is missing."""


def ensure_env_loaded(env_path: Path | None = None) -> None:
    """
    Ensure .env file is loaded exactly once.

    Args:
        env_path: Optional path to .env file. If None, searches upward from this package.

    Side Effects:
        - Loads environment variables from .env file (existing vars win)
        - Sets module-level flag to prevent double-loading
    """
    global _ENV_LOADED
    if _ENV_LOADED:
        return

    if env_path is None:
        current = Path(__file__).parent
        while current != current.parent:
            env_candidate = current / ".env"
            if env_candidate.exists():
                env_path = env_candidate
                break
            current = current.parent

    if env_path and env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()
    _ENV_LOADED = True


def get_required_env(key: str, error_msg: str | None = None) -> str:
    """
    Get required environment variable or fail with a clear error.

    Raises:
        EnvironmentConfigError: If the variable is unset or empty
    """
    ensure_env_loaded()
    value = os.getenv(key)
    if not value:
        raise EnvironmentConfigError(error_msg or f"{key} not found in environment (.env or process)")
    return value


def get_optional_env(key: str, default: str = "") -> str:
    ensure_env_loaded()
    return os.getenv(key, default)


@dataclass(frozen=True)
class DigestEnv:
    """
    Credentials and per-run settings shared read-only by all extractors.

    Extractors pick the fields they need; the registry never looks inside.
    """

    limitless_api_key: str = ""
    google_cloud_project: str | None = None
    gemini_location: str = "us-central1"
    gemini_model: str = "gemini-2.0-flash-001"
    timezone: str = "America/Los_Angeles"
    from_email: str = ""
    to_email: str = ""

    @classmethod
    def from_environ(cls) -> DigestEnv:
        ensure_env_loaded()
        return cls(
            limitless_api_key=get_optional_env("LIMITLESS_API_KEY"),
            google_cloud_project=get_optional_env("GOOGLE_CLOUD_PROJECT") or None,
            gemini_location=get_optional_env("GEMINI_LOCATION", settings.GEMINI_LOCATION),
            gemini_model=get_optional_env("GEMINI_MODEL", settings.GEMINI_MODEL),
            timezone=get_optional_env("DIGEST_TIMEZONE", settings.DIGEST_TIMEZONE),
            from_email=get_optional_env("DIGEST_FROM_EMAIL"),
            to_email=get_optional_env("DIGEST_TO_EMAIL"),
        )
