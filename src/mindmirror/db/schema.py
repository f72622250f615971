"""Database schema for MindMirror.

Two independent databases:
- Base: journal entry metadata (the document store behind the repository)
- LocalBase: device-local video blobs, one database file per user

They are never joined in SQL; the only link is the blob key string held
in JournalEntry.video_url.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, LargeBinary, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for entry database models."""

    pass


class LocalBase(DeclarativeBase):
    """Base class for local blob database models."""

    pass


class JournalEntry(Base):
    """Journal entry metadata.

    video_url is a blob key or the "no-video" sentinel.
    """

    __tablename__ = "journal_entries"

    entry_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    tags_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    video_url: Mapped[str] = mapped_column(String(256), nullable=False)
    duration: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )


class StoredVideo(LocalBase):
    """Video payload keyed by blob key, with optional side-car thumbnail."""

    __tablename__ = "videos"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    blob: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(128), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)
    thumbnail: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    thumbnail_mime_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stored_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
