"""Journal coordinator: ties recordings, entries and local blobs together.

The coordinator holds the entry form's pending video (set when a
recording finishes), submits entries, and builds the entry listing by
resolving each entry's blob key against the local store. Entries whose
video is not on this device are still listed, marked unavailable.

Deletion removes the remote entry first and the local blob second, so a
failure can leave an orphaned blob but never an entry pointing at a
deleted video that the user did not ask to delete.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from mindmirror.core.errors import StorageError, ValidationError
from mindmirror.core.formatting import normalize_tags
from mindmirror.journal.playback import PlaybackRegistry
from mindmirror.journal.repository import EntryRepository
from mindmirror.models.domain import NO_VIDEO, JournalEntryEntity, Thumbnail
from mindmirror.models.types import EntryCreate
from mindmirror.storage.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class FormState(str, Enum):
    NO_VIDEO = "no_video"
    VIDEO_PENDING = "video_pending"


@dataclass(frozen=True)
class PendingVideo:
    """Recording finished but not yet attached to a saved entry."""

    key: str
    duration: str


@dataclass(frozen=True)
class ResolvedEntry:
    """Entry plus the local resolution of its video."""

    entry: JournalEntryEntity
    playback_url: str | None = None
    thumbnail: Thumbnail | None = None
    video_unavailable: bool = False


class JournalCoordinator:
    """Entry form and entry list workflows over a repository and a blob store."""

    def __init__(
        self,
        repository: EntryRepository,
        blob_store: LocalBlobStore,
        playback: PlaybackRegistry | None = None,
    ):
        self.repository = repository
        self.blob_store = blob_store
        self.playback = playback or PlaybackRegistry()
        self._pending: PendingVideo | None = None
        self._listing: list[ResolvedEntry] = []
        self._listeners: list[Listener] = []
        self._generation = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Entry form
    # ------------------------------------------------------------------

    @property
    def state(self) -> FormState:
        return FormState.VIDEO_PENDING if self._pending else FormState.NO_VIDEO

    @property
    def pending_video(self) -> PendingVideo | None:
        return self._pending

    def attach_video(self, key: str, duration: str) -> None:
        """Record completion callback: remember the new video for the next entry."""
        if not key:
            raise ValueError("Video key must be a non-empty string")
        self._pending = PendingVideo(key=key, duration=duration)
        logger.debug(f"Video {key} ({duration}) pending")

    def detach_video(self) -> None:
        """Forget the pending video (recording discarded)."""
        self._pending = None

    async def submit_entry(
        self,
        title: str,
        tags: str | Iterable[str] = (),
        video_key: str | None = None,
    ) -> JournalEntryEntity:
        """Create an entry from the form.

        Args:
            title: Entry title; surrounding whitespace is dropped.
            tags: Comma-separated string or sequence of tags; elements of a
                sequence are split on commas too.
            video_key: Blob key; defaults to the pending video, if any.

        Returns:
            Created entry.

        Raises:
            ValidationError: If the title is empty. Nothing is sent.
            RemoteError: If the repository call fails. Pending video is kept.
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")

        if isinstance(tags, str):
            tags = [tags]
        tag_list = [tag for item in tags if item for tag in normalize_tags(item)]

        pending = self._pending
        key = video_key or (pending.key if pending else NO_VIDEO)
        duration = pending.duration if pending and pending.key == key else None

        entry = await self.repository.create(
            EntryCreate(title=title, tags=tag_list, video_url=key, duration=duration)
        )
        self._pending = None
        self._invalidate_listings()
        logger.info(f"Saved entry {entry.entry_id} (video: {key})")
        self._notify()
        return entry

    # ------------------------------------------------------------------
    # Entry list
    # ------------------------------------------------------------------

    @property
    def entries(self) -> list[ResolvedEntry]:
        """Most recent accepted listing."""
        return list(self._listing)

    async def list_entries(self) -> list[ResolvedEntry]:
        """Fetch entries and resolve their videos against the local store.

        A listing that finishes after a newer listing started, or after an
        entry was submitted or deleted, is returned but not kept.

        Raises:
            RemoteError: If the repository cannot be read; the previous
                listing stays in `entries`.
        """
        self._generation += 1
        generation = self._generation

        entries = await self.repository.list()
        results = await asyncio.gather(
            *(self._resolve(e) for e in entries), return_exceptions=True
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            self._revoke(r for r in results if isinstance(r, ResolvedEntry))
            raise failures[0]
        resolved = list(results)

        if self._closed or generation != self._generation:
            logger.debug(f"Discarding stale entry listing (generation {generation})")
            self._revoke(resolved)
            return resolved

        previous, self._listing = self._listing, resolved
        self._revoke(previous)
        unavailable = sum(1 for r in resolved if r.video_unavailable)
        logger.info(f"Listed {len(resolved)} entries ({unavailable} with unavailable video)")
        return resolved

    async def _resolve(self, entry: JournalEntryEntity) -> ResolvedEntry:
        if not entry.has_video:
            return ResolvedEntry(entry=entry)
        try:
            blob = await self.blob_store.get(entry.video_url)
        except StorageError as e:
            logger.warning(f"Could not read video {entry.video_url} for entry {entry.entry_id}: {e}")
            return ResolvedEntry(entry=entry, video_unavailable=True)
        if blob is None:
            logger.info(f"Video {entry.video_url} for entry {entry.entry_id} is not on this device")
            return ResolvedEntry(entry=entry, video_unavailable=True)
        return ResolvedEntry(
            entry=entry,
            playback_url=self.playback.create(blob),
            thumbnail=blob.thumbnail,
        )

    def _invalidate_listings(self) -> None:
        # Listings already in flight predate this change
        self._generation += 1

    def _revoke(self, rows: Iterable[ResolvedEntry]) -> None:
        for row in rows:
            if row.playback_url:
                self.playback.revoke(row.playback_url)

    async def delete_entry(self, entry_id: str) -> bool:
        """Delete an entry and its local video.

        Returns:
            False if the entry does not exist, True once it is deleted.

        Raises:
            RemoteError: If the repository call fails; the blob is kept.
        """
        entry = await self.repository.get(entry_id)
        if entry is None:
            return False
        if not await self.repository.delete(entry_id):
            return False
        self._invalidate_listings()

        if entry.has_video:
            try:
                await self.blob_store.delete(entry.video_url)
            except StorageError as e:
                logger.warning(f"Entry {entry_id} deleted but video {entry.video_url} was not: {e}")

        removed = [r for r in self._listing if r.entry.entry_id == entry_id]
        self._revoke(removed)
        self._listing = [r for r in self._listing if r.entry.entry_id != entry_id]
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Listeners and lifecycle
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after each submit or delete. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Entry listener failed")

    def close(self) -> None:
        """Revoke every playback handle and ignore in-flight listings."""
        self._closed = True
        self._listing = []
        self.playback.revoke_all()
