"""Playback handles for locally stored videos.

A handle is an opaque URL standing for an in-memory blob while an entry
list is on screen. Handles must be revoked when the list that created
them is replaced, or the blobs stay referenced.
"""

from __future__ import annotations

import logging
import uuid

from mindmirror.models.domain import VideoBlob

logger = logging.getLogger(__name__)

PLAYBACK_URL_PREFIX = "blob:mindmirror/"


class PlaybackRegistry:
    """Registry of live playback handles."""

    def __init__(self):
        self._handles: dict[str, VideoBlob] = {}

    def create(self, blob: VideoBlob) -> str:
        url = f"{PLAYBACK_URL_PREFIX}{uuid.uuid4()}"
        self._handles[url] = blob
        return url

    def resolve(self, url: str) -> VideoBlob | None:
        return self._handles.get(url)

    def revoke(self, url: str) -> None:
        self._handles.pop(url, None)

    def revoke_all(self) -> None:
        if self._handles:
            logger.debug(f"Revoking {len(self._handles)} playback handle(s)")
        self._handles.clear()

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, url: object) -> bool:
        return url in self._handles
