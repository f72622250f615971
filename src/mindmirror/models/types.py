"""Pydantic models for the entry repository boundary.

Remote payloads use the original JSON field names (_id, videoUrl,
createdAt). Every record crossing the boundary is parsed here so that a
malformed response fails with RemoteError instead of leaking missing
fields into the coordinator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from mindmirror.core.errors import RemoteError
from mindmirror.models.domain import NO_VIDEO, JournalEntryEntity


class EntryCreate(BaseModel):
    """Entry submission sent to the repository."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    video_url: str = Field(default=NO_VIDEO, alias="videoUrl")
    duration: str | None = None
    user_id: str | None = Field(default=None, alias="userId")


class EntryRecord(BaseModel):
    """Entry as returned by the repository."""

    model_config = ConfigDict(populate_by_name=True)

    entry_id: str = Field(validation_alias=AliasChoices("_id", "id", "entry_id"), min_length=1)
    title: str = Field(min_length=1)
    tags: list[str] = Field(default_factory=list)
    video_url: str = Field(validation_alias=AliasChoices("videoUrl", "video_url"))
    duration: str | None = None
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))
    user_id: str | None = Field(
        default=None, validation_alias=AliasChoices("userId", "user_id")
    )

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_entity(self) -> JournalEntryEntity:
        """Convert to domain entity."""
        return JournalEntryEntity(
            entry_id=self.entry_id,
            title=self.title,
            tags=list(self.tags),
            video_url=self.video_url,
            duration=self.duration,
            created_at=self.created_at,
            user_id=self.user_id,
        )


def parse_entry(payload: Any) -> JournalEntryEntity:
    """Parse one remote entry payload.

    Args:
        payload: Decoded JSON object.

    Returns:
        JournalEntryEntity.

    Raises:
        RemoteError: If the payload does not match EntryRecord.
    """
    try:
        return EntryRecord.model_validate(payload).to_entity()
    except PydanticValidationError as e:
        raise RemoteError(f"Malformed entry record: {e.error_count()} invalid field(s)") from e


def parse_entries(payload: Any) -> list[JournalEntryEntity]:
    """Parse a remote entry listing.

    Raises:
        RemoteError: If the payload is not a list or any record is malformed.
    """
    if not isinstance(payload, list):
        raise RemoteError(f"Expected a list of entries, got {type(payload).__name__}")
    return [parse_entry(item) for item in payload]
