"""Action items: owner-assigned tasks pulled from the transcript as JSON."""

from __future__ import annotations

from datetime import date
from html import escape
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from lifedigest.extractors.implementations._llm import (
    LLMExtractor,
    Section,
    choice,
    llm_default_config,
)

PRIORITIES = ("high", "medium", "low")
STATUSES = ("new", "in_progress", "completed", "cancelled")

PRIORITY_COLORS = {"high": "#ff6b6b", "medium": "#ffd93d", "low": "#6bcf7f"}
STATUS_COLORS = {"completed": "#6bcf7f", "in_progress": "#ffd93d"}
CELL = "border: 1px solid #ddd; padding: 8px;"

ACTION_ITEMS_PROMPT = """You are an expert at extracting actionable tasks from conversation transcripts.

TASK
Extract ONLY explicit action items. Be conservative: only extract tasks that are
clearly assigned or committed to by someone.

RULES
- Only extract tasks with a clear owner
- Only include due dates that are explicitly mentioned; never guess dates
- Determine priority from urgency language, explicit statements or deadline proximity
- Identify status only if explicitly mentioned
- Include brief context from where the task was mentioned
- If no clear action items exist, return an empty array

OUTPUT FORMAT
Return ONLY a JSON array:
[
  {
    "task": "Brief, clear description of what needs to be done",
    "owner": "Name of person responsible",
    "dueDate": "YYYY-MM-DD or null",
    "priority": "high|medium|low",
    "status": "new|in_progress|completed|cancelled",
    "context": "Brief context from the conversation"
  }
]"""


class ActionItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, extra="ignore")

    task: str
    owner: str = "Unknown"
    due_date: str | None = None
    priority: str = "medium"
    status: str = "new"
    context: str = ""

    @field_validator("task")
    @classmethod
    def _task_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("task must not be blank")
        return value.strip()

    @field_validator("owner", "context", mode="before")
    @classmethod
    def _text_or_default(cls, value: Any, info: ValidationInfo) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return "Unknown" if info.field_name == "owner" else ""

    @field_validator("due_date", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return value.strip() if isinstance(value, str) and value.strip() else None

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> str:
        return choice(value, PRIORITIES, "medium")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> str:
        return choice(value, STATUSES, "new")

    @property
    def due(self) -> date | None:
        if not self.due_date:
            return None
        try:
            return date.fromisoformat(self.due_date[:10])
        except ValueError:
            return None


def sort_action_items(items: list[ActionItem]) -> list[ActionItem]:
    """Priority first (high to low), then dated items by due date, then undated."""
    return sorted(
        items,
        key=lambda item: (
            PRIORITIES.index(item.priority),
            item.due is None,
            item.due or date.max,
        ),
    )


def _label(value: str) -> str:
    return value.replace("_", " ").upper()


class ActionItemsExtractor(LLMExtractor):
    id = "action_items"
    name = "Action Items"
    description = "Extracts actionable tasks and assignments from conversations"

    section_title = "Action Items"
    empty_message = "No action items found in today's conversations."
    system_prompt = ACTION_ITEMS_PROMPT

    default_config = llm_default_config(priority=90, max_tokens=1000, temperature=0.1)

    def render(self, response_text: str) -> Section:
        items, warnings = self.parse_items(response_text, "action_items", ActionItem)
        if not items:
            return self.empty_section(warnings)

        items = sort_action_items(items)
        rows = []
        for item in items:
            priority_color = PRIORITY_COLORS[item.priority]
            status_color = STATUS_COLORS.get(item.status, "#e1e5e9")
            rows.append(
                "<tr>"
                f'<td style="{CELL}">{escape(item.task)}</td>'
                f'<td style="{CELL}">{escape(item.owner)}</td>'
                f'<td style="{CELL}">{escape(item.due_date or "-")}</td>'
                f'<td style="{CELL} background-color: {priority_color}; color: white; '
                f'font-weight: bold;">{_label(item.priority)}</td>'
                f'<td style="{CELL} background-color: {status_color};">{_label(item.status)}</td>'
                "</tr>"
            )
        header = "".join(
            f'<th style="{CELL} text-align: left;">{column}</th>'
            for column in ("Task", "Owner", "Due Date", "Priority", "Status")
        )
        html = (
            f"<h3>{self.section_title} ({len(items)})</h3>"
            '<table style="border-collapse: collapse; width: 100%; margin-top: 10px;">'
            f'<thead><tr style="background-color: #f5f5f5;">{header}</tr></thead>'
            f"<tbody>{''.join(rows)}</tbody></table>"
        )
        lines = [
            f"• {item.task} ({item.owner}) - Due: {item.due_date or 'Not specified'}"
            f" - Priority: {_label(item.priority)} - Status: {_label(item.status)}"
            for item in items
        ]
        return Section(
            html=html,
            text=f"{self.section_title} ({len(items)})\n\n" + "\n".join(lines),
            item_count=len(items),
            warnings=warnings,
            custom={"action_items": [item.model_dump() for item in items]},
        )
