"""
Speech analysis: filler-word rate for the wearer's own speech.

Runs locally (no model call). Only blockquotes spoken by the user
(speaker_identifier == "user") are counted.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from lifedigest.extractors.base import (
    AbstractExtractor,
    ExtractorConfig,
    ExtractorResult,
    ResultMetadata,
    ValidationResult,
)
from lifedigest.lifelogs.formatting import walk
from lifedigest.lifelogs.models import Lifelog

DEFAULT_FILLER_WORDS = ["um", "uh", "erm", "like", "you know"]


def filler_pattern(words: Sequence[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(word) for word in words)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


def filler_stats(records: Sequence[Lifelog], words: Sequence[str]) -> tuple[int, int, float]:
    """(filler count, word count, rate as % of words rounded to 2 places)."""
    pattern = filler_pattern(words)
    fillers = 0
    word_count = 0
    for log in records:
        for node in walk(log.contents):
            if node.spoken_by_user and node.content:
                fillers += len(pattern.findall(node.content))
                word_count += len(node.content.split())
    rate = round(fillers / word_count * 100, 2) if word_count else 0.0
    return fillers, word_count, rate


class SpeechAnalysisExtractor(AbstractExtractor):
    id = "speech"
    name = "Speech Analysis"
    description = "Counts filler words in your own speech"
    version = "1.0.0"

    default_config: ExtractorConfig = {
        "enabled": True,
        "priority": 50,
        "settings": {"filler_words": DEFAULT_FILLER_WORDS},
    }

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        base = super().validate_config(config)
        if base is not True:
            return base
        words = (config.get("settings") or {}).get("filler_words")
        if words is None:
            return True
        if (
            not isinstance(words, list)
            or not words
            or not all(isinstance(word, str) and word.strip() for word in words)
        ):
            return "settings.filler_words must be a non-empty list of strings"
        return True

    async def extract(
        self, records: Sequence[Lifelog], context: Any, config: ExtractorConfig | None = None
    ) -> ExtractorResult:
        words = self.resolve_settings(config).get("filler_words") or DEFAULT_FILLER_WORDS

        async def analyze() -> tuple[int, int, float]:
            return filler_stats(records, words)

        (fillers, word_count, rate), elapsed_ms = await self.measure_time(analyze)

        return ExtractorResult(
            html=(
                "<h2>Speech Analysis</h2><ul>"
                f"<li>Total fillers: <strong>{fillers}</strong></li>"
                f"<li>Rate: <strong>{rate:.2f}%</strong> of words</li>"
                "</ul><p>Keep speaking clearly!</p>"
            ),
            text=(
                "Speech Analysis\n\n"
                f"- Total fillers: {fillers}\n"
                f"- Rate: {rate:.2f}% of words\n\n"
                "Keep speaking clearly!"
            ),
            metadata=ResultMetadata(
                processing_time_ms=elapsed_ms,
                record_count=len(records),
                custom={"filler_count": fillers, "word_count": word_count, "filler_rate": rate},
            ),
        )
