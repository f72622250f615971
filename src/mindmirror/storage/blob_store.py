"""Local blob store for recorded videos.

Keyed binary storage in a per-device SQLite file. Survives restarts of
the process but is never synchronized anywhere: the entry repository
only ever sees the key.

The store handle is opened lazily on first use and shared by all
concurrent callers. Opening retries with exponential backoff; when every
attempt fails the database file is deleted and recreated, which loses
whatever it held.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from mindmirror.core.errors import StorageError
from mindmirror.core.identity import sha256_bytes
from mindmirror.db import repo
from mindmirror.db.schema import LocalBase
from mindmirror.db.session import dispose_database, get_db_session, init_db
from mindmirror.models.domain import StoredVideoEntity, Thumbnail, VideoBlob

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 0.1  # seconds; doubled after each failed attempt

# SQLite side files removed together with the database on recreate
_SQLITE_SUFFIXES = ("", "-journal", "-wal", "-shm")


class LocalBlobStore:
    """Async key-value store of video blobs and side-car thumbnails.

    Usage:
        store = LocalBlobStore(settings.blob_db_path)
        await store.put(key, VideoBlob(data, "video/webm"))
        blob = await store.get(key)
    """

    def __init__(
        self,
        db_path: Path,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
    ):
        """Initialize blob store. No I/O happens until first use.

        Args:
            db_path: SQLite file for this device/user.
            max_attempts: Open attempts before the destructive fallback.
            backoff_base: Delay after the first failed attempt, in seconds.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.db_path = Path(db_path)
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._ready = False
        self._init_lock = asyncio.Lock()
        # One SQLite connection per file; worker threads take turns on it
        self._io_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Handle lifecycle
    # ------------------------------------------------------------------

    def _open(self) -> None:
        """Create the schema (and the file) if needed."""
        init_db(self.db_path, base=LocalBase)

    def _recreate(self) -> None:
        """Delete the database file and create an empty store."""
        dispose_database(self.db_path)
        for suffix in _SQLITE_SUFFIXES:
            Path(f"{self.db_path}{suffix}").unlink(missing_ok=True)
        self._open()

    async def _ensure_ready(self) -> None:
        if self._ready:
            return
        async with self._init_lock:
            if self._ready:
                return
            await self._initialize()
            self._ready = True

    async def _initialize(self) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await asyncio.to_thread(self._open)
                logger.debug(f"Blob store opened at {self.db_path} (attempt {attempt})")
                return
            except (SQLAlchemyError, OSError) as e:
                logger.warning(
                    f"Blob store open failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
                dispose_database(self.db_path)
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.backoff_base * 2 ** (attempt - 1))

        logger.error(
            f"Blob store at {self.db_path} could not be opened; recreating it, "
            "existing videos are lost"
        )
        try:
            await asyncio.to_thread(self._recreate)
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Failed to recreate blob store at {self.db_path}: {e}") from e

    async def close(self) -> None:
        """Dispose the shared handle. The next call reopens it."""
        async with self._init_lock:
            dispose_database(self.db_path)
            self._ready = False

    async def _call(self, action: str, func: Callable[..., T], *args) -> T:
        await self._ensure_ready()
        try:
            return await asyncio.to_thread(self._locked, func, *args)
        except SQLAlchemyError as e:
            raise StorageError(f"Blob store {action} failed: {e}") from e

    def _locked(self, func: Callable[..., T], *args) -> T:
        with self._io_lock:
            return func(*args)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def put(self, key: str, blob: VideoBlob, thumbnail: Thumbnail | None = None) -> None:
        """Store or overwrite the blob under key.

        The store does not check for an existing record; callers must
        supply a fresh key to avoid replacing another recording.

        Args:
            key: Blob key.
            blob: Video payload.
            thumbnail: Side-car thumbnail; defaults to blob.thumbnail.
        """
        if not key:
            raise ValueError("Blob key must be a non-empty string")
        if not isinstance(blob.data, bytes):
            raise TypeError(f"Blob payload must be bytes, got {type(blob.data).__name__}")
        if thumbnail is None:
            thumbnail = blob.thumbnail

        await self._call("put", self._put_sync, key, blob, thumbnail)
        logger.info(f"Stored video {key} ({blob.size} bytes, {blob.mime_type})")

    def _put_sync(self, key: str, blob: VideoBlob, thumbnail: Thumbnail | None) -> None:
        with get_db_session(self.db_path) as session:
            repo.upsert_video(
                session,
                key,
                blob.data,
                blob.mime_type,
                sha256_bytes(blob.data),
                thumbnail=thumbnail.data if thumbnail else None,
                thumbnail_mime_type=thumbnail.mime_type if thumbnail else None,
            )

    async def get(self, key: str) -> VideoBlob | None:
        """Get the blob stored under key.

        Returns:
            VideoBlob, or None if absent or the stored record is malformed.
        """
        record = await self._call("get", self._get_sync, key)
        if record is None:
            return None
        return _validate_record(record)

    def _get_sync(self, key: str) -> StoredVideoEntity | None:
        with get_db_session(self.db_path) as session:
            return repo.get_video(session, key)

    async def get_thumbnail(self, key: str) -> Thumbnail | None:
        """Get the side-car thumbnail for key, if one was stored."""
        row = await self._call("get_thumbnail", self._get_thumbnail_sync, key)
        if row is None:
            return None
        data, mime_type = row
        if not isinstance(data, bytes) or not data:
            return None
        return Thumbnail(data=data, mime_type=mime_type or "image/jpeg")

    def _get_thumbnail_sync(self, key: str):
        with get_db_session(self.db_path) as session:
            return repo.get_video_thumbnail(session, key)

    async def delete(self, key: str) -> None:
        """Delete the blob under key. Deleting an absent key is a no-op."""
        deleted = await self._call("delete", self._delete_sync, key)
        if deleted:
            logger.info(f"Deleted video {key}")
        else:
            logger.debug(f"Delete of absent video {key} ignored")

    def _delete_sync(self, key: str) -> bool:
        with get_db_session(self.db_path) as session:
            return repo.delete_video(session, key)

    async def keys(self) -> list[str]:
        """List stored keys, oldest first (for orphan cleanup)."""
        return await self._call("keys", self._keys_sync)

    def _keys_sync(self) -> list[str]:
        with get_db_session(self.db_path) as session:
            return repo.list_video_keys(session)


def _validate_record(record: StoredVideoEntity) -> VideoBlob | None:
    """Turn a raw record into a VideoBlob, or None if it is malformed."""
    if not isinstance(record.blob, bytes):
        logger.warning(f"Video {record.key} is not a binary payload; treating as absent")
        return None
    if not record.mime_type:
        logger.warning(f"Video {record.key} has no mime type; treating as absent")
        return None
    if record.sha256 and sha256_bytes(record.blob) != record.sha256:
        logger.warning(f"Video {record.key} failed checksum; treating as absent")
        return None

    thumbnail = None
    if isinstance(record.thumbnail, bytes) and record.thumbnail:
        thumbnail = Thumbnail(
            data=record.thumbnail,
            mime_type=record.thumbnail_mime_type or "image/jpeg",
        )

    return VideoBlob(data=record.blob, mime_type=record.mime_type, thumbnail=thumbnail)
