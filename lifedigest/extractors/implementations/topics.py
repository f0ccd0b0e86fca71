"""Discussion topics, grouped by category and flagged by importance."""

from __future__ import annotations

from html import escape
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lifedigest.extractors.implementations._llm import (
    LLMExtractor,
    Section,
    choice,
    llm_default_config,
)

CATEGORIES = ("business", "technical", "personal", "planning", "review", "other")
IMPORTANCE_LEVELS = ("high", "medium", "low")
IMPORTANCE_COLORS = {"high": "#ff6b6b", "medium": "#ffd93d", "low": "#6bcf7f"}

TOPICS_PROMPT = """You are an expert at analyzing conversations and identifying key discussion topics.

TASK:
Identify and categorize the main topics discussed. Focus on major themes,
business or technical subjects, planning discussions and topics that consumed
significant discussion time.

CATEGORIES:
- "business": strategy, operations, sales, marketing, partnerships
- "technical": development, infrastructure, tools, technical decisions
- "personal": career development, team management, individual concerns
- "planning": project planning, roadmaps, timelines, resource allocation
- "review": performance reviews, retrospectives, evaluations
- "other": topics that don't fit other categories

OUTPUT FORMAT:
Return a valid JSON object:
{
  "topics": [
    {
      "topic": "Clear, concise topic name",
      "category": "business|technical|personal|planning|review|other",
      "description": "Brief description of what was discussed",
      "keyPoints": ["key point 1", "key point 2"],
      "timeRange": {"start": "ISO timestamp", "end": "ISO timestamp", "duration": 15},
      "source": "Meeting/conversation title",
      "importance": "high|medium|low"
    }
  ]
}

Only extract topics that had meaningful discussion (at least 2-3 minutes).
If no significant topics are found, return an empty topics array."""


class TimeRange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    start: str | None = None
    end: str | None = None
    duration: float = 0

    @field_validator("duration", mode="before")
    @classmethod
    def _duration_number(cls, value: Any) -> float:
        if isinstance(value, int | float) and not isinstance(value, bool) and value >= 0:
            return value
        return 0


class Topic(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")

    topic: str
    category: str = "other"
    description: str = ""
    key_points: list[str] = Field(default_factory=list)
    time_range: TimeRange = Field(default_factory=TimeRange)
    source: str = "Unknown"
    importance: str = "medium"

    @field_validator("topic")
    @classmethod
    def _topic_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic must not be blank")
        return value.strip()

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> str:
        return choice(value, CATEGORIES, "other")

    @field_validator("importance", mode="before")
    @classmethod
    def _normalize_importance(cls, value: Any) -> str:
        return choice(value, IMPORTANCE_LEVELS, "medium")

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("source", mode="before")
    @classmethod
    def _source_text(cls, value: Any) -> str:
        return value if isinstance(value, str) and value.strip() else "Unknown"

    @field_validator("key_points", mode="before")
    @classmethod
    def _points_list(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [str(point) for point in value if point]

    @field_validator("time_range", mode="before")
    @classmethod
    def _range_mapping(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}

    @property
    def duration_label(self) -> str:
        return f"{self.time_range.duration:g}"


class TopicsExtractor(LLMExtractor):
    id = "topics"
    name = "Discussion Topics"
    description = "Identifies and categorizes key topics discussed in conversations"

    section_title = "Discussion Topics"
    empty_message = "No topics identified in today's conversations."
    system_prompt = TOPICS_PROMPT
    user_prompt_prefix = "Identify topics in these conversations:\n\n"

    default_config = llm_default_config(priority=60, max_tokens=1200, temperature=0.2)

    def render(self, response_text: str) -> Section:
        topics, warnings = self.parse_items(response_text, "topics", Topic)
        if not topics:
            return self.empty_section(warnings)

        html_parts = [f"<h3>{self.section_title} ({len(topics)})</h3>"]
        text_parts = [f"{self.section_title} ({len(topics)})\n"]
        by_category: dict[str, int] = {}

        for category in CATEGORIES:
            group = [t for t in topics if t.category == category]
            by_category[category] = len(group)
            if not group:
                continue

            heading = f"{category.capitalize()} ({len(group)})"
            html_parts.append(f'<h4>{heading}</h4><div style="margin-left: 15px;">')
            text_parts.append(f"{heading}:")
            for topic in group:
                color = IMPORTANCE_COLORS[topic.importance]
                block = (
                    '<div style="margin-bottom: 15px; padding: 10px; '
                    f'border-left: 3px solid {color}; background-color: #f8f9fa;">'
                    f"<strong>{escape(topic.topic)}</strong> "
                    f'<span style="background-color: {color}; color: white; padding: 2px 6px; '
                    'border-radius: 3px; font-size: 0.8em; font-weight: bold;">'
                    f"{topic.importance.upper()}</span><br/>"
                    f"<em>{escape(topic.description)}</em><br/>"
                )
                text_parts.append(f"\n• {topic.topic} [{topic.importance.upper()}]")
                text_parts.append(f"  {topic.description}")
                if topic.key_points:
                    points = "".join(f"<li>{escape(point)}</li>" for point in topic.key_points)
                    block += f"<strong>Key Points:</strong><ul>{points}</ul>"
                    text_parts.append("  Key Points:")
                    text_parts.extend(f"    - {point}" for point in topic.key_points)
                block += (
                    f"<small><strong>Duration:</strong> {topic.duration_label} minutes | "
                    f"<strong>Source:</strong> {escape(topic.source)}</small></div>"
                )
                text_parts.append(
                    f"  Duration: {topic.duration_label} minutes | Source: {topic.source}"
                )
                html_parts.append(block)
            html_parts.append("</div>")
            text_parts.append("")

        return Section(
            html="".join(html_parts),
            text="\n".join(text_parts).strip(),
            item_count=len(topics),
            warnings=warnings,
            custom={"by_category": by_category},
        )
