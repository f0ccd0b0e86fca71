"""
Shared base for extractors that ask Gemini about the day's conversations.

Subclasses supply the prompt, the section title and render(); this class
handles settings validation, client setup, transcript formatting, timing and
the "nothing found" section.

Failure policy:
    - Model transport errors propagate (the scheduler isolates them)
    - Unparseable JSON yields an empty section with a warning
    - Items failing schema validation are dropped with a warning
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from html import escape
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from lifedigest.config import GEMINI_MODEL, LLM_DEFAULT_MAX_CONTENT_LENGTH
from lifedigest.extractors.base import (
    AbstractExtractor,
    ExtractorConfig,
    ExtractorResult,
    ResultMetadata,
    ValidationResult,
)
from lifedigest.lifelogs.formatting import format_conversations
from lifedigest.lifelogs.models import Lifelog
from lifedigest.llm.gemini import GeminiClient, TextGenerator
from lifedigest.llm.parsing import parse_json_response
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter

logger = get_logger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)


def llm_default_config(priority: int, max_tokens: int, temperature: float, enabled: bool = True):
    return {
        "enabled": enabled,
        "priority": priority,
        "settings": {
            "model": GEMINI_MODEL,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "max_content_length": LLM_DEFAULT_MAX_CONTENT_LENGTH,
        },
    }


def choice(value: Any, allowed: Sequence[str], default: str) -> str:
    """Normalise an enum-like model value; anything unexpected becomes default."""
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


@dataclass
class Section:
    html: str
    text: str
    item_count: int = 0
    warnings: list[str] = field(default_factory=list)
    custom: dict[str, Any] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


class LLMExtractor(AbstractExtractor):
    version = "2.0.0"

    section_title: str
    empty_message: str
    system_prompt: str
    user_prompt_prefix: str = ""
    json_output: bool = True

    def __init__(self, client: TextGenerator | None = None):
        self._client = client
        self._owns_client = client is None

    async def initialize(self, context: Any) -> None:
        """
        Build a GeminiClient from the run context unless one was injected.

        Side Effects:
            - Calls vertexai.init() via GeminiClient
        """
        if self._client is not None:
            return
        project = getattr(context, "google_cloud_project", None)
        if not project:
            raise self.create_error(f"GOOGLE_CLOUD_PROJECT is required for {self.name} extractor")
        self._client = GeminiClient(
            project,
            location=getattr(context, "gemini_location", None),
            model=getattr(context, "gemini_model", None),
        )

    async def cleanup(self) -> None:
        if self._owns_client:
            self._client = None

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        base = super().validate_config(config)
        if base is not True:
            return base

        settings = config.get("settings") or {}
        model = settings.get("model")
        if model is not None and not isinstance(model, str):
            return "settings.model must be a string"

        max_tokens = settings.get("max_tokens")
        if max_tokens is not None and (not _is_number(max_tokens) or max_tokens <= 0):
            return "settings.max_tokens must be a positive number"

        temperature = settings.get("temperature")
        if temperature is not None and (not _is_number(temperature) or not 0 <= temperature <= 2):
            return "settings.temperature must be a number between 0 and 2"

        max_length = settings.get("max_content_length")
        if max_length is not None and (not _is_number(max_length) or max_length <= 0):
            return "settings.max_content_length must be a positive number"

        return True

    def setting(self, settings: Mapping[str, Any], key: str) -> Any:
        value = settings.get(key)
        if value is None:
            return self.default_config["settings"][key]  # type: ignore[index]
        return value

    async def extract(
        self, records: Sequence[Lifelog], context: Any, config: ExtractorConfig | None = None
    ) -> ExtractorResult:
        if self._client is None:
            raise self.create_error(
                f"{self.name} client not initialized. Call initialize() first."
            )

        settings = self.resolve_settings(config)
        model = self.setting(settings, "model")

        if not records:
            return self._result(self.empty_section(), records, model, 0.0, 0)

        content = format_conversations(
            records,
            int(self.setting(settings, "max_content_length")),
            getattr(context, "timezone", None),
        )
        if not content.strip():
            return self._result(self.empty_section(), records, model, 0.0, 0)

        client = self._client
        response_text, elapsed_ms = await self.measure_time(
            lambda: client.generate(
                f"{self.user_prompt_prefix}{content}",
                system_instruction=self.system_prompt,
                max_output_tokens=int(self.setting(settings, "max_tokens")),
                temperature=float(self.setting(settings, "temperature")),
                json_output=self.json_output,
                model=model,
            )
        )
        counter(f"extractors.{self.id}.llm_calls")
        section = self.render(response_text)
        return self._result(section, records, model, elapsed_ms, len(content))

    @abstractmethod
    def render(self, response_text: str) -> Section:
        """Turn the model response into this extractor's section."""

    def empty_section(self, warnings: list[str] | None = None) -> Section:
        return Section(
            html=f"<h3>{escape(self.section_title)}</h3><p><em>{escape(self.empty_message)}</em></p>",
            text=f"{self.section_title}\n\n{self.empty_message}",
            warnings=list(warnings or []),
        )

    def parse_items(
        self, response_text: str, key: str | None, schema: type[ItemT]
    ) -> tuple[list[ItemT], list[str]]:
        """
        Parse a JSON list (bare, or under key) into validated items.

        Returns:
            (items, warnings); a parse failure gives ([], [warning])
        """
        payload = parse_json_response(response_text, counter_prefix=f"extractors.{self.id}")
        if payload is None:
            return [], ["Could not parse model response as JSON"]

        raw_items: Any = payload
        if isinstance(payload, dict):
            raw_items = payload.get(key, []) if key else []
        if not isinstance(raw_items, list):
            return [], [f"Model response did not contain a list of {key or 'items'}"]

        items: list[ItemT] = []
        dropped = 0
        for raw in raw_items:
            try:
                items.append(schema.model_validate(raw))
            except ValidationError:
                dropped += 1
        warnings = [f"Dropped {dropped} malformed item(s)"] if dropped else []
        if dropped:
            logger.warning("%s: dropped %d malformed item(s) from model response", self.id, dropped)
        return items, warnings

    def _result(
        self,
        section: Section,
        records: Sequence[Lifelog],
        model: str,
        elapsed_ms: float,
        content_length: int,
    ) -> ExtractorResult:
        return ExtractorResult(
            html=section.html,
            text=section.text,
            metadata=ResultMetadata(
                processing_time_ms=elapsed_ms,
                record_count=len(records),
                warnings=section.warnings,
                custom={
                    "model": model,
                    "content_length": content_length,
                    "item_count": section.item_count,
                    **section.custom,
                },
            ),
        )
