"""
Lifelog records (Pydantic v2).

Field names are snake_case; the upstream API's camelCase keys (startTime,
speakerName, ...) are accepted through aliases. Records are frozen: every
extractor reads the same batch and none may change it.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _LifelogModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class ContentNode(_LifelogModel):
    """One node of a lifelog transcript tree (heading1, heading2 or blockquote)."""

    type: str = ""
    content: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    start_offset_ms: int | None = None
    end_offset_ms: int | None = None
    speaker_name: str | None = None
    speaker_identifier: str | None = None
    children: tuple[ContentNode, ...] = Field(default_factory=tuple)

    @property
    def is_heading(self) -> bool:
        return self.type in ("heading1", "heading2")

    @property
    def spoken_by_user(self) -> bool:
        return self.speaker_identifier == "user"


class Lifelog(_LifelogModel):
    id: str
    title: str = ""
    start_time: datetime
    end_time: datetime
    contents: tuple[ContentNode, ...] = Field(default_factory=tuple)
    markdown: str | None = None

    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)
