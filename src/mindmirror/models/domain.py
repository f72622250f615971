"""Domain models for MindMirror.

Pure Python dataclasses representing domain entities.
These models are independent of SQLAlchemy and used throughout
the application for clean separation from the database layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# Reserved video_url meaning "this entry has no recording"
NO_VIDEO = "no-video"


# ============================================================================
# Local Media Domain
# ============================================================================


@dataclass(frozen=True)
class Thumbnail:
    """Encoded still frame stored beside a video blob."""

    data: bytes
    mime_type: str = "image/jpeg"
    width: int = 320
    height: int = 180


@dataclass
class StoredVideoEntity:
    """Raw local blob record, before validation."""

    key: str
    blob: object
    mime_type: str | None
    size: int | None
    sha256: str | None
    thumbnail: bytes | None = None
    thumbnail_mime_type: str | None = None


@dataclass(frozen=True)
class VideoBlob:
    """Binary recording payload as held by the local blob store."""

    data: bytes
    mime_type: str
    thumbnail: Thumbnail | None = None

    @property
    def size(self) -> int:
        return len(self.data)


# ============================================================================
# Journal Domain
# ============================================================================


@dataclass
class JournalEntryEntity:
    """Domain model for a journal entry.

    video_url holds a blob key or NO_VIDEO. The key is a reference only;
    nothing checks that the blob exists on this device.
    """

    entry_id: str
    title: str
    created_at: datetime
    tags: list[str] = field(default_factory=list)
    video_url: str = NO_VIDEO
    duration: str | None = None
    user_id: str | None = None

    @property
    def has_video(self) -> bool:
        return bool(self.video_url) and self.video_url != NO_VIDEO
