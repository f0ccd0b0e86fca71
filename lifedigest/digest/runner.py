"""
Daily digest run: fetch -> execute extractors -> render -> deliver.

Entry points:
    lifedigest-run                  # yesterday, send email
    lifedigest-run --dry-run        # render only
    lifedigest-run --date 2025-03-14 --config extractors.yaml --output digest.html

Side Effects:
    - Reads .env once (python-dotenv)
    - Calls the lifelog API, Vertex AI and SMTP
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any

from lifedigest.config import EXTRACTOR_CONFIG_FILE
from lifedigest.digest.delivery import DigestDelivery
from lifedigest.digest.renderer import RenderedDigest, render_digest
from lifedigest.extractors.config import (
    RegistryConfigFileError,
    RegistryOptions,
    load_registry_file,
)
from lifedigest.extractors.errors import InitializationError, RegistrationError
from lifedigest.extractors.implementations import DEFAULT_EXTRACTORS
from lifedigest.extractors.registry import ExtractorRegistry
from lifedigest.extractors.report import ExecutionReport
from lifedigest.infrastructure.env import DigestEnv, ensure_env_loaded
from lifedigest.lifelogs.client import LifelogClient, LifelogFetchError
from lifedigest.lifelogs.formatting import DateWindow, window_for_day, yesterday_window
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)

DATE_LABEL_FORMAT = "%A, %B %d, %Y"


@dataclass
class DigestRun:
    window: DateWindow
    lifelog_count: int
    report: ExecutionReport
    digest: RenderedDigest
    sent: bool = False


def build_default_registry(
    options: RegistryOptions | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
) -> ExtractorRegistry:
    """
    Registry with every built-in extractor registered.

    Raises:
        InvalidConfigError: an override fails the extractor's validation
    """
    overrides = overrides or {}
    known = {extractor_cls.id for extractor_cls in DEFAULT_EXTRACTORS}
    unknown = sorted(set(overrides) - known)
    if unknown:
        logger.warning("Ignoring overrides for unknown extractors: %s", ", ".join(unknown))

    registry = ExtractorRegistry(options)
    for extractor_cls in DEFAULT_EXTRACTORS:
        registry.register(extractor_cls(), overrides.get(extractor_cls.id))
    return registry


def load_default_registry(config_path: str | Path | None = None) -> ExtractorRegistry:
    """Default registry, with options/overrides from YAML when a path is given or configured."""
    path = config_path or EXTRACTOR_CONFIG_FILE
    if not path:
        return build_default_registry()
    options, overrides = load_registry_file(path)
    return build_default_registry(options, overrides)


def _window(timezone: str, start: str | None, end: str | None) -> DateWindow:
    if start is None and end is None:
        return yesterday_window(timezone)
    if start is None or end is None:
        raise ValueError("start and end must be given together")
    return DateWindow(start=start, end=end, day=date.fromisoformat(start[:10]))


async def run_digest(
    env: DigestEnv,
    registry: ExtractorRegistry | None = None,
    client: LifelogClient | None = None,
    delivery: DigestDelivery | None = None,
    send: bool = True,
    start: str | None = None,
    end: str | None = None,
) -> DigestRun:
    """
    Produce (and optionally send) the digest for one window, yesterday by default.

    A registry passed in is left registered and initialized for reuse; one
    built here is cleared before returning.

    Raises:
        LifelogFetchError: lifelogs could not be fetched
        InitializationError: an extractor failed to initialize
    """
    window = _window(env.timezone, start, end)
    client = client or LifelogClient(env.limitless_api_key, timezone=env.timezone)
    owns_registry = registry is None
    registry = registry or load_default_registry()

    try:
        with time_block("digest.run.latency"):
            lifelogs = await asyncio.to_thread(client.fetch, window.start, window.end)
            report = await registry.execute(lifelogs, env)
            digest = render_digest(
                report,
                window.day.strftime(DATE_LABEL_FORMAT),
                order=registry.execution_order(),
            )

        sent = False
        if send:
            delivery = delivery or DigestDelivery(from_email=env.from_email or None)
            sent = await asyncio.to_thread(delivery.send_digest, env.to_email, digest)
    finally:
        if owns_registry:
            await registry.clear()

    counter("digest.runs")
    log_event(
        "digest.run_completed",
        day=window.day.isoformat(),
        lifelogs=len(lifelogs),
        succeeded=report.summary.success_count,
        failed=report.summary.error_count,
        sent=sent,
    )
    return DigestRun(
        window=window, lifelog_count=len(lifelogs), report=report, digest=digest, sent=sent
    )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build and send the daily lifelog digest")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        help="Day to digest (YYYY-MM-DD, local time). Default: yesterday",
    )
    parser.add_argument("--dry-run", action="store_true", help="Render only, do not send email")
    parser.add_argument("--config", type=Path, help="YAML file with registry options/overrides")
    parser.add_argument("--output", type=Path, help="Write the rendered HTML to this file")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    ensure_env_loaded()
    env = DigestEnv.from_environ()

    if not env.limitless_api_key:
        logger.error("LIMITLESS_API_KEY not set; cannot fetch lifelogs")
        return 2

    start = end = None
    if args.date is not None:
        window = window_for_day(args.date)
        start, end = window.start, window.end

    try:
        registry = load_default_registry(args.config)
        run = asyncio.run(
            _run_and_clear(env, registry, send=not args.dry_run, start=start, end=end)
        )
    except (RegistryConfigFileError, RegistrationError, FileNotFoundError) as e:
        logger.error("Invalid extractor configuration: %s", e)
        return 2
    except (LifelogFetchError, InitializationError) as e:
        logger.error("Digest run failed: %s", e)
        return 1
    except Exception as e:
        # continue_on_error=false re-raises the first extractor failure as-is
        logger.error("Digest aborted by extractor failure: %s", e)
        return 1

    if args.output:
        args.output.write_text(run.digest.html, encoding="utf-8")
        logger.info("Wrote digest HTML to %s", args.output)

    summary = run.report.summary
    logger.info(
        "Digest for %s: %d lifelogs, %d/%d sections, %d failed, sent=%s",
        run.window.day.isoformat(),
        run.lifelog_count,
        summary.success_count,
        summary.total_extractors,
        summary.error_count,
        run.sent,
    )
    if not args.dry_run and not run.sent:
        return 1
    return 0


async def _run_and_clear(env: DigestEnv, registry: ExtractorRegistry, **kwargs: Any) -> DigestRun:
    try:
        return await run_digest(env, registry=registry, **kwargs)
    finally:
        await registry.clear()


if __name__ == "__main__":
    raise SystemExit(main())
