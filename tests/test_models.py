"""Tests for domain models and repository boundary parsing."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from mindmirror.core.errors import RemoteError
from mindmirror.models.domain import NO_VIDEO, JournalEntryEntity, VideoBlob
from mindmirror.models.types import EntryCreate, EntryRecord, parse_entries, parse_entry


class TestDomain:
    """Plain dataclass behavior."""

    def test_video_blob_size(self):
        """Size is derived from the payload."""
        assert VideoBlob(b"12345", "video/webm").size == 5

    def test_has_video(self):
        """Only a real key counts as a video."""
        now = datetime.now(timezone.utc)
        assert JournalEntryEntity("e1", "t", now, video_url="video-1").has_video
        assert not JournalEntryEntity("e2", "t", now).has_video
        assert not JournalEntryEntity("e3", "t", now, video_url="").has_video


class TestEntryCreate:
    """Outgoing payload."""

    def test_wire_names(self):
        """Serialized with the remote field names."""
        payload = EntryCreate(title="Morning", tags=["mood"], video_url="video-1", duration="0:42")
        assert payload.model_dump(by_alias=True, exclude_none=True) == {
            "title": "Morning",
            "tags": ["mood"],
            "videoUrl": "video-1",
            "duration": "0:42",
        }

    def test_defaults_to_no_video(self):
        """Without a video the sentinel is sent."""
        assert EntryCreate(title="t").video_url == NO_VIDEO

    def test_empty_title_rejected(self):
        """Titles must not be empty."""
        with pytest.raises(PydanticValidationError):
            EntryCreate(title="")


class TestParseEntry:
    """Incoming records."""

    def test_remote_field_names(self):
        """_id, videoUrl and createdAt are accepted."""
        entry = parse_entry(
            {
                "_id": "abc",
                "title": "Morning",
                "tags": ["mood"],
                "videoUrl": "video-1",
                "duration": "1:05",
                "createdAt": "2026-01-01T12:00:00Z",
            }
        )
        assert entry.entry_id == "abc"
        assert entry.video_url == "video-1"
        assert entry.created_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_timestamp_is_utc(self):
        """Timestamps without zone are read as UTC."""
        record = EntryRecord.model_validate(
            {"id": "abc", "title": "t", "videoUrl": NO_VIDEO, "createdAt": "2026-01-01T12:00:00"}
        )
        assert record.created_at.tzinfo == timezone.utc

    def test_missing_field_is_remote_error(self):
        """A record without videoUrl is malformed."""
        with pytest.raises(RemoteError, match="Malformed"):
            parse_entry({"_id": "abc", "title": "t", "createdAt": "2026-01-01T12:00:00Z"})

    def test_listing_must_be_list(self):
        """A non-list listing is malformed."""
        with pytest.raises(RemoteError):
            parse_entries({"entries": []})

    def test_listing(self):
        """Each record in a listing is parsed in order."""
        entries = parse_entries(
            [
                {"_id": "b", "title": "t", "videoUrl": NO_VIDEO, "createdAt": "2026-01-02T00:00:00Z"},
                {"_id": "a", "title": "t", "videoUrl": NO_VIDEO, "createdAt": "2026-01-01T00:00:00Z"},
            ]
        )
        assert [e.entry_id for e in entries] == ["b", "a"]
