"""Tests for database schema invariants.

1. Entry and blob tables live in separate metadata
2. Blob keys are unique
3. Entry defaults (tags, created_at) are filled in
"""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from mindmirror.db.schema import Base, JournalEntry, LocalBase, StoredVideo


class TestSchemaCreation:
    """Test that schema can be created without errors."""

    def test_entry_tables(self, engine):
        """Entry metadata holds only the journal table."""
        assert set(Base.metadata.tables.keys()) == {"journal_entries"}

    def test_local_tables(self, engine):
        """Local metadata holds only the video table."""
        assert set(LocalBase.metadata.tables.keys()) == {"videos"}


class TestJournalEntry:
    """Journal entry rows."""

    def test_defaults(self, session):
        """tags_json and created_at default when omitted."""
        session.add(JournalEntry(entry_id="e1", title="Morning", video_url="no-video"))
        session.commit()

        row = session.get(JournalEntry, "e1")
        assert row.tags_json == "[]"
        assert isinstance(row.created_at, datetime)
        assert row.duration is None
        assert row.user_id is None

    def test_title_required(self, session):
        """Title is not nullable."""
        session.add(JournalEntry(entry_id="e1", title=None, video_url="no-video"))
        with pytest.raises(IntegrityError):
            session.commit()


class TestStoredVideo:
    """Stored video rows."""

    def _video(self, key: str) -> StoredVideo:
        return StoredVideo(key=key, blob=b"data", mime_type="video/webm", size=4, sha256="x" * 64)

    def test_key_unique(self, session):
        """Two rows cannot share a blob key."""
        session.add(self._video("video-1"))
        session.commit()
        session.expunge_all()

        session.add(self._video("video-1"))
        with pytest.raises(IntegrityError):
            session.commit()

    def test_thumbnail_optional(self, session):
        """Thumbnail columns may be empty."""
        session.add(self._video("video-2"))
        session.commit()

        row = session.get(StoredVideo, "video-2")
        assert row.thumbnail is None
        assert row.thumbnail_mime_type is None
        assert row.stored_at is not None
