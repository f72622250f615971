"""Repository pattern for database operations.

Encapsulates all SQLAlchemy queries, keeping domain logic pure.
Returns domain models (not SQLAlchemy entities) to external callers.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from mindmirror.db.schema import JournalEntry, StoredVideo
from mindmirror.models.domain import JournalEntryEntity, StoredVideoEntity

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

# Re-export for external use
__all__ = ["DbSession"]


# ============================================================================
# Converters: SQLAlchemy -> Domain
# ============================================================================


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _entry_to_entity(entry: JournalEntry) -> JournalEntryEntity:
    """Convert SQLAlchemy JournalEntry to domain entity."""
    return JournalEntryEntity(
        entry_id=entry.entry_id,
        title=entry.title,
        tags=json.loads(entry.tags_json) if entry.tags_json else [],
        video_url=entry.video_url,
        duration=entry.duration,
        created_at=_as_utc(entry.created_at),
        user_id=entry.user_id,
    )


def _video_to_entity(video: StoredVideo) -> StoredVideoEntity:
    """Convert SQLAlchemy StoredVideo to domain entity."""
    return StoredVideoEntity(
        key=video.key,
        blob=video.blob,
        mime_type=video.mime_type,
        size=video.size,
        sha256=video.sha256,
        thumbnail=video.thumbnail,
        thumbnail_mime_type=video.thumbnail_mime_type,
    )


# ============================================================================
# Journal Entry Repository
# ============================================================================


def create_entry(session: DbSession, entity: JournalEntryEntity) -> JournalEntryEntity:
    """Create a new journal entry."""
    entry = JournalEntry(
        entry_id=entity.entry_id,
        user_id=entity.user_id,
        title=entity.title,
        tags_json=json.dumps(list(entity.tags)),
        video_url=entity.video_url,
        duration=entity.duration,
        created_at=entity.created_at,
    )
    session.add(entry)
    return entity


def get_entry(
    session: DbSession, entry_id: str, user_id: str | None = None
) -> JournalEntryEntity | None:
    """Get entry by ID, optionally scoped to a user."""
    query = session.query(JournalEntry).filter(JournalEntry.entry_id == entry_id)
    if user_id is not None:
        query = query.filter(JournalEntry.user_id == user_id)
    entry = query.first()
    return _entry_to_entity(entry) if entry else None


def list_entries(session: DbSession, user_id: str | None = None) -> list[JournalEntryEntity]:
    """Get all entries, newest first."""
    query = session.query(JournalEntry)
    if user_id is not None:
        query = query.filter(JournalEntry.user_id == user_id)
    entries = query.order_by(JournalEntry.created_at.desc()).all()
    return [_entry_to_entity(e) for e in entries]


def delete_entry(session: DbSession, entry_id: str, user_id: str | None = None) -> bool:
    """Delete entry by ID. Returns False if it did not exist."""
    query = session.query(JournalEntry).filter(JournalEntry.entry_id == entry_id)
    if user_id is not None:
        query = query.filter(JournalEntry.user_id == user_id)
    entry = query.first()
    if entry is None:
        return False
    session.delete(entry)
    return True


# ============================================================================
# Local Video Repository
# ============================================================================


def upsert_video(
    session: DbSession,
    key: str,
    blob: bytes,
    mime_type: str,
    sha256: str,
    *,
    thumbnail: bytes | None = None,
    thumbnail_mime_type: str | None = None,
) -> None:
    """Insert or overwrite the video stored under key."""
    video = session.get(StoredVideo, key)
    if video is None:
        video = StoredVideo(key=key)
        session.add(video)
    video.blob = blob
    video.mime_type = mime_type
    video.size = len(blob)
    video.sha256 = sha256
    video.thumbnail = thumbnail
    video.thumbnail_mime_type = thumbnail_mime_type
    video.stored_at = datetime.now(timezone.utc)


def get_video(session: DbSession, key: str) -> StoredVideoEntity | None:
    """Get raw video record by key."""
    video = session.get(StoredVideo, key)
    return _video_to_entity(video) if video else None


def get_video_thumbnail(session: DbSession, key: str) -> tuple[bytes | None, str | None] | None:
    """Get (thumbnail, mime_type) for key without loading the video payload."""
    row = (
        session.query(StoredVideo.thumbnail, StoredVideo.thumbnail_mime_type)
        .filter(StoredVideo.key == key)
        .first()
    )
    return (row[0], row[1]) if row else None


def delete_video(session: DbSession, key: str) -> bool:
    """Delete video by key. Returns False if it did not exist."""
    deleted = session.query(StoredVideo).filter(StoredVideo.key == key).delete()
    return deleted > 0


def list_video_keys(session: DbSession) -> list[str]:
    """Get all stored video keys, oldest first."""
    rows = session.query(StoredVideo.key).order_by(StoredVideo.stored_at).all()
    return [r[0] for r in rows]
