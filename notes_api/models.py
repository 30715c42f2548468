"""Pydantic models for the Notes API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

# Error type carried by payload validation failures; the HTTP layer reports
# the message of the first one verbatim.
NOTE_FIELD_ERROR = "note_field"

TITLE_REQUIRED = "Title is required and must be a non-empty string"
CONTENT_REQUIRED = "Content is required and must be a non-empty string"
TAGS_NOT_ARRAY = "Tags must be an array of strings"
TAGS_NOT_STRINGS = "All tags must be strings"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class Note(BaseModel):
    """A stored note.

    Serialized with camelCase keys (``createdAt``, ``updatedAt``) both on the
    wire and in the notes file. Instances are immutable; the store replaces
    them on update.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: int = Field(..., gt=0, description="Unique note id")
    title: str = Field(..., min_length=1, description="Note title")
    content: str = Field(..., min_length=1, description="Note content")
    tags: list[str] = Field(default_factory=list, description="List of tags")
    created_at: datetime = Field(
        default_factory=utcnow, description="ISO-8601 creation timestamp"
    )
    updated_at: datetime = Field(
        default_factory=utcnow, description="ISO-8601 last update timestamp"
    )

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        """Treat naive timestamps from older files as UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


def _fail(message: str) -> PydanticCustomError:
    return PydanticCustomError(NOTE_FIELD_ERROR, message)


class NotePayload(BaseModel):
    """Request body for creating or replacing a note.

    Rules are checked in a fixed order (title, content, tags shape, tag
    element types) and only the first violation is reported. Values are
    passed through untrimmed; the store trims them.
    """

    title: str
    content: str
    tags: list[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _check_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            data = {}

        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise _fail(TITLE_REQUIRED)

        content = data.get("content")
        if not isinstance(content, str) or not content.strip():
            raise _fail(CONTENT_REQUIRED)

        tags = data.get("tags", [])
        if not isinstance(tags, list):
            raise _fail(TAGS_NOT_ARRAY)
        if not all(isinstance(tag, str) for tag in tags):
            raise _fail(TAGS_NOT_STRINGS)

        return {"title": title, "content": content, "tags": tags}
