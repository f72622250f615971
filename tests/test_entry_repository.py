"""Tests for the in-memory and SQL entry repositories."""

import asyncio

import pytest

from mindmirror.core.errors import RemoteError
from mindmirror.journal import InMemoryEntryRepository, SqlEntryRepository
from mindmirror.models.domain import NO_VIDEO
from mindmirror.models.types import EntryCreate


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture(params=["memory", "sql"])
def repository(request, entries_db_path):
    """Each contract test runs against both local repositories."""
    if request.param == "memory":
        return InMemoryEntryRepository()
    return SqlEntryRepository(entries_db_path)


class TestRepositoryContract:
    """Behavior shared by every repository."""

    def test_create_assigns_id_and_time(self, repository):
        """Created entries get an id and a UTC creation time."""
        entry = _run(repository.create(EntryCreate(title="Morning", tags=["mood"])))
        assert entry.entry_id
        assert entry.created_at.tzinfo is not None
        assert entry.tags == ["mood"]
        assert entry.video_url == NO_VIDEO

    def test_list_newest_first(self, repository):
        """Most recently created entry is listed first."""

        async def scenario():
            first = await repository.create(EntryCreate(title="first"))
            await asyncio.sleep(0.002)
            second = await repository.create(EntryCreate(title="second"))
            return first, second, await repository.list()

        first, second, entries = _run(scenario())
        assert [e.entry_id for e in entries] == [second.entry_id, first.entry_id]

    def test_get(self, repository):
        """Get returns the entry or None."""

        async def scenario():
            entry = await repository.create(
                EntryCreate(title="t", video_url="video-1", duration="0:30")
            )
            return entry, await repository.get(entry.entry_id), await repository.get("missing")

        entry, found, missing = _run(scenario())
        assert found.entry_id == entry.entry_id
        assert found.video_url == "video-1"
        assert found.duration == "0:30"
        assert missing is None

    def test_delete(self, repository):
        """Delete reports whether the entry existed."""

        async def scenario():
            entry = await repository.create(EntryCreate(title="t"))
            first = await repository.delete(entry.entry_id)
            second = await repository.delete(entry.entry_id)
            return first, second, await repository.list()

        first, second, entries = _run(scenario())
        assert first is True
        assert second is False
        assert entries == []


class TestSqlEntryRepository:
    """SQL-specific behavior."""

    def test_user_scoping(self, entries_db_path):
        """A scoped repository sees only its user's entries."""
        alice = SqlEntryRepository(entries_db_path, user_id="alice")
        bob = SqlEntryRepository(entries_db_path, user_id="bob")

        async def scenario():
            entry = await alice.create(EntryCreate(title="mine"))
            return entry, await alice.list(), await bob.list(), await bob.delete(entry.entry_id)

        entry, alice_entries, bob_entries, bob_deleted = _run(scenario())
        assert entry.user_id == "alice"
        assert [e.entry_id for e in alice_entries] == [entry.entry_id]
        assert bob_entries == []
        assert bob_deleted is False

    def test_persists_across_instances(self, entries_db_path):
        """Entries survive a new repository instance."""

        async def scenario():
            entry = await SqlEntryRepository(entries_db_path).create(EntryCreate(title="kept"))
            return entry, await SqlEntryRepository(entries_db_path).get(entry.entry_id)

        entry, found = _run(scenario())
        assert found.title == "kept"

    def test_database_failure_is_remote_error(self, tmp_path):
        """An unusable database path surfaces as RemoteError."""
        db_path = tmp_path / "entries.db"
        db_path.mkdir()

        with pytest.raises(RemoteError):
            _run(SqlEntryRepository(db_path).list())
