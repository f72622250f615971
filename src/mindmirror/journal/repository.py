"""Entry repository interface and local implementations.

The repository persists entry metadata only. A video is referenced by
its blob key in video_url; the payload itself never leaves the device.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from mindmirror.core.errors import RemoteError
from mindmirror.core.identity import generate_entry_id
from mindmirror.db import repo
from mindmirror.db.session import get_db_session, init_db
from mindmirror.models.domain import JournalEntryEntity
from mindmirror.models.types import EntryCreate

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EntryRepository(ABC):
    """Abstract store of journal entries.

    Implementations raise RemoteError for any failure to reach or use
    the backing store.
    """

    @abstractmethod
    async def create(self, payload: EntryCreate) -> JournalEntryEntity:
        """Persist a new entry and return it with id and creation time."""

    @abstractmethod
    async def list(self) -> list[JournalEntryEntity]:
        """All entries, newest first."""

    @abstractmethod
    async def get(self, entry_id: str) -> JournalEntryEntity | None:
        """Entry by id, or None if it does not exist."""

    @abstractmethod
    async def delete(self, entry_id: str) -> bool:
        """Delete entry by id. Returns False if it did not exist."""


def _new_entity(payload: EntryCreate, user_id: str | None = None) -> JournalEntryEntity:
    return JournalEntryEntity(
        entry_id=generate_entry_id(),
        title=payload.title,
        tags=list(payload.tags),
        video_url=payload.video_url,
        duration=payload.duration,
        created_at=datetime.now(timezone.utc),
        user_id=user_id if user_id is not None else payload.user_id,
    )


class InMemoryEntryRepository(EntryRepository):
    """Process-local repository for development and tests."""

    def __init__(self, entries: list[JournalEntryEntity] | None = None):
        # Newest first
        self._entries: list[JournalEntryEntity] = sorted(
            entries or [], key=lambda e: e.created_at, reverse=True
        )

    async def create(self, payload: EntryCreate) -> JournalEntryEntity:
        entity = _new_entity(payload)
        self._entries.insert(0, entity)
        logger.debug(f"Created entry {entity.entry_id} in memory")
        return entity

    async def list(self) -> list[JournalEntryEntity]:
        return list(self._entries)

    async def get(self, entry_id: str) -> JournalEntryEntity | None:
        for entity in self._entries:
            if entity.entry_id == entry_id:
                return entity
        return None

    async def delete(self, entry_id: str) -> bool:
        for index, entity in enumerate(self._entries):
            if entity.entry_id == entry_id:
                del self._entries[index]
                return True
        return False


class SqlEntryRepository(EntryRepository):
    """Entries in the SQLite journal_entries table.

    Usage:
        repository = SqlEntryRepository(settings.entries_db_path, user_id=settings.user_id)
        entry = await repository.create(EntryCreate(title="Morning"))
    """

    def __init__(self, db_path: Path, user_id: str | None = None):
        """Initialize SQL repository.

        Args:
            db_path: Path to the entry database.
            user_id: When set, entries are created for and filtered by this user.
        """
        self.db_path = Path(db_path)
        self.user_id = user_id
        self._initialized = False

    async def _call(self, action: str, func: Callable[..., T], *args) -> T:
        try:
            if not self._initialized:
                await asyncio.to_thread(init_db, self.db_path)
                self._initialized = True
            return await asyncio.to_thread(func, *args)
        except SQLAlchemyError as e:
            raise RemoteError(f"Entry {action} failed: {e}") from e

    async def create(self, payload: EntryCreate) -> JournalEntryEntity:
        entity = _new_entity(payload, self.user_id)
        await self._call("create", self._create_sync, entity)
        logger.info(f"Created entry {entity.entry_id}")
        return entity

    def _create_sync(self, entity: JournalEntryEntity) -> None:
        with get_db_session(self.db_path) as session:
            repo.create_entry(session, entity)

    async def list(self) -> list[JournalEntryEntity]:
        return await self._call("list", self._list_sync)

    def _list_sync(self) -> list[JournalEntryEntity]:
        with get_db_session(self.db_path) as session:
            return repo.list_entries(session, self.user_id)

    async def get(self, entry_id: str) -> JournalEntryEntity | None:
        return await self._call("get", self._get_sync, entry_id)

    def _get_sync(self, entry_id: str) -> JournalEntryEntity | None:
        with get_db_session(self.db_path) as session:
            return repo.get_entry(session, entry_id, self.user_id)

    async def delete(self, entry_id: str) -> bool:
        deleted = await self._call("delete", self._delete_sync, entry_id)
        if deleted:
            logger.info(f"Deleted entry {entry_id}")
        return deleted

    def _delete_sync(self, entry_id: str) -> bool:
        with get_db_session(self.db_path) as session:
            return repo.delete_entry(session, entry_id, self.user_id)
