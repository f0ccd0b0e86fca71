"""
People and contact details mentioned in conversations.

Disabled by default: the section can contain third-party personal data, so it
has to be switched on explicitly (config override or YAML file).
"""

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

CONFIDENCE_LEVELS = ("high", "medium", "low")

CONTACTS_PROMPT = """You are an expert at extracting contact information from conversation transcripts.

TASK:
Extract people, organizations and contact details mentioned in conversations:
- Names of people mentioned (excluding speakers already identified)
- Their roles, titles or positions
- Companies or organizations they are affiliated with
- Email addresses, phone numbers or other contact details
- Context of how they were mentioned

DO NOT EXTRACT:
- Generic references ("the team", "customer service")
- Public figures mentioned in passing
- Fictional characters or brands

OUTPUT FORMAT:
Return a valid JSON object:
{
  "contacts": [
    {
      "name": "Full name of the person",
      "role": "Title or role (if mentioned)",
      "organization": "Company or organization (if mentioned)",
      "email": "email@example.com (if mentioned)",
      "phone": "phone number (if mentioned)",
      "context": "Brief context of how they were mentioned",
      "source": "Meeting/conversation title",
      "confidence": "high|medium|low"
    }
  ]
}

Be conservative with personal information. If no contacts are found, return
an empty contacts array."""


def _optional(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


class Contact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    role: str | None = None
    organization: str | None = None
    email: str | None = None
    phone: str | None = None
    context: str = ""
    source: str = "Unknown"
    confidence: str = "medium"

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()

    @field_validator("role", "organization", "email", "phone", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        return _optional(value)

    @field_validator("context", mode="before")
    @classmethod
    def _context_text(cls, value: Any) -> str:
        return _optional(value) or ""

    @field_validator("source", mode="before")
    @classmethod
    def _source_text(cls, value: Any) -> str:
        return _optional(value) or "Unknown"

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalize_confidence(cls, value: Any) -> str:
        return choice(value, CONFIDENCE_LEVELS, "medium")


class ContactsExtractor(LLMExtractor):
    id = "contacts"
    name = "Contact Information"
    description = "Extracts people and contact details mentioned in conversations"

    section_title = "Contact Information"
    empty_message = "No contacts mentioned in today's conversations."
    system_prompt = CONTACTS_PROMPT
    user_prompt_prefix = "Extract contacts from these conversations:\n\n"

    default_config = llm_default_config(
        priority=70, max_tokens=800, temperature=0.1, enabled=False
    )

    def render(self, response_text: str) -> Section:
        contacts, warnings = self.parse_items(response_text, "contacts", Contact)
        if not contacts:
            return self.empty_section(warnings)

        cards = []
        lines = []
        for contact in contacts:
            card = f"<strong>{escape(contact.name)}</strong>"
            line = f"• {contact.name}"
            if contact.role:
                card += f" - <em>{escape(contact.role)}</em>"
                line += f" - {contact.role}"
            card += "<br/>"
            if contact.organization:
                card += f"<strong>Organization:</strong> {escape(contact.organization)}<br/>"
                line += f"\n  Organization: {contact.organization}"
            if contact.email:
                email = escape(contact.email)
                card += f'<strong>Email:</strong> <a href="mailto:{email}">{email}</a><br/>'
                line += f"\n  Email: {contact.email}"
            if contact.phone:
                card += f"<strong>Phone:</strong> {escape(contact.phone)}<br/>"
                line += f"\n  Phone: {contact.phone}"
            card += f"<strong>Context:</strong> {escape(contact.context)}<br/>"
            card += f"<strong>Source:</strong> {escape(contact.source)}"
            line += f"\n  Context: {contact.context}\n  Source: {contact.source}"
            cards.append(
                '<div style="margin-bottom: 15px; padding: 10px; '
                f'border-left: 3px solid #007cba; background-color: #f8f9fa;">{card}</div>'
            )
            lines.append(line)

        return Section(
            html=(
                f"<h3>{self.section_title} ({len(contacts)})</h3>"
                f'<div style="margin-top: 10px;">{"".join(cards)}</div>'
            ),
            text=f"{self.section_title} ({len(contacts)})\n\n" + "\n\n".join(lines),
            item_count=len(contacts),
            warnings=warnings,
        )
