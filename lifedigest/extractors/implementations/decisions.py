"""Key decisions, grouped by scope (strategic, project, local)."""

from __future__ import annotations

from html import escape
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from lifedigest.extractors.implementations._llm import (
    LLMExtractor,
    Section,
    choice,
    llm_default_config,
)

SCOPES = ("strategic", "project", "local")
CONFIDENCE_LEVELS = ("high", "medium", "low")

DECISIONS_PROMPT = """You are an expert decision analyst. Identify and extract KEY DECISIONS from conversation transcripts.

WHAT QUALIFIES AS A DECISION:
- A definitive choice made between alternatives
- A commitment to a specific course of action
- A resolution that affects future work or direction

WHAT DOES NOT QUALIFY:
- Ongoing discussions without resolution
- Ideas or suggestions without commitment
- Questions or hypothetical scenarios
- Routine operational choices (like scheduling)

OUTPUT FORMAT:
Return a valid JSON object:
{
  "decisions": [
    {
      "decision": "Clear, specific description of what was decided",
      "context": "Why this decision was made",
      "participants": ["person1", "person2"],
      "scope": "local|project|strategic",
      "timestamp": "ISO timestamp when the decision was made",
      "source": "Meeting/conversation title",
      "confidence": "high|medium|low"
    }
  ]
}

SCOPE:
- "local": individual tasks or immediate work
- "project": project timeline, scope or resources
- "strategic": business direction or long-term plans

Be conservative: better to miss a decision than to hallucinate one.
If no clear decisions are found, return an empty decisions array."""


class Decision(BaseModel):
    model_config = ConfigDict(extra="ignore")

    decision: str
    context: str = ""
    participants: list[str] = []
    scope: str = "local"
    timestamp: str | None = None
    source: str = "Unknown"
    confidence: str = "medium"

    @field_validator("decision")
    @classmethod
    def _decision_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("decision must not be blank")
        return value.strip()

    @field_validator("context", mode="before")
    @classmethod
    def _context_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("source", mode="before")
    @classmethod
    def _source_text(cls, value: Any) -> str:
        return value if isinstance(value, str) and value.strip() else "Unknown"

    @field_validator("participants", mode="before")
    @classmethod
    def _participant_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(name) for name in value if name]

    @field_validator("scope", mode="before")
    @classmethod
    def _normalize_scope(cls, value: Any) -> str:
        return choice(value, SCOPES, "local")

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> str:
        return choice(value, CONFIDENCE_LEVELS, "medium")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _optional_timestamp(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value else None


class DecisionsExtractor(LLMExtractor):
    id = "decisions"
    name = "Key Decisions"
    description = "Identifies key decisions made during conversations"

    section_title = "Key Decisions"
    empty_message = "No significant decisions identified in today's conversations."
    system_prompt = DECISIONS_PROMPT
    user_prompt_prefix = "Extract decisions from these conversations:\n\n"

    default_config = llm_default_config(priority=80, max_tokens=1024, temperature=0.1)

    def render(self, response_text: str) -> Section:
        decisions, warnings = self.parse_items(response_text, "decisions", Decision)
        if not decisions:
            return self.empty_section(warnings)

        html_parts = [f"<h3>{self.section_title} ({len(decisions)})</h3>"]
        text_parts = [f"{self.section_title} ({len(decisions)})\n"]
        by_scope: dict[str, int] = {}

        for scope in SCOPES:
            group = [d for d in decisions if d.scope == scope]
            by_scope[scope] = len(group)
            if not group:
                continue

            heading = f"{scope.capitalize()} Decisions"
            html_parts.append(f"<h4>{heading}</h4><ul>")
            text_parts.append(f"{heading}:")
            for d in group:
                item = f"<li><strong>{escape(d.decision)}</strong><br/>"
                text_parts.append(f"• {d.decision}")
                if d.context:
                    item += f"<em>Context:</em> {escape(d.context)}<br/>"
                    text_parts.append(f"  Context: {d.context}")
                if d.participants:
                    names = ", ".join(d.participants)
                    item += f"<em>Participants:</em> {escape(names)}<br/>"
                    text_parts.append(f"  Participants: {names}")
                item += f"<em>Source:</em> {escape(d.source)}</li>"
                text_parts.append(f"  Source: {d.source}\n")
                html_parts.append(item)
            html_parts.append("</ul>")

        return Section(
            html="".join(html_parts),
            text="\n".join(text_parts).strip(),
            item_count=len(decisions),
            warnings=warnings,
            custom={"by_scope": by_scope, "decisions": [d.model_dump() for d in decisions]},
        )
