"""Thumbnail extraction for finalized recordings.

Loads the finalized payload into an offscreen decoder and captures a
320x180 JPEG still. Offsets start at 1 second and advance on each failed
attempt; if every attempt fails the thumbnail is simply missing.
"""

from __future__ import annotations

import logging

from mindmirror.adapter.media.video_decode import VideoReader, spooled_payload
from mindmirror.models.domain import Thumbnail, VideoBlob

logger = logging.getLogger(__name__)

THUMBNAIL_WIDTH = 320
THUMBNAIL_HEIGHT = 180
THUMBNAIL_MIME_TYPE = "image/jpeg"
JPEG_QUALITY = 70

# One attempt per offset
THUMBNAIL_OFFSETS_MS = (1000, 2000, 3000, 4000, 5000)


def _capture_at(blob: VideoBlob, offset_ms: int) -> Thumbnail | None:
    import cv2

    with spooled_payload(blob.data, blob.mime_type) as path, VideoReader(path) as reader:
        frame = reader.frame_at(offset_ms)
    if frame is None:
        return None

    resized = cv2.resize(
        frame.bgr, (THUMBNAIL_WIDTH, THUMBNAIL_HEIGHT), interpolation=cv2.INTER_AREA
    )
    ok, encoded = cv2.imencode(".jpg", resized, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
    if not ok:
        return None

    return Thumbnail(
        data=encoded.tobytes(),
        mime_type=THUMBNAIL_MIME_TYPE,
        width=THUMBNAIL_WIDTH,
        height=THUMBNAIL_HEIGHT,
    )


def derive_thumbnail(
    blob: VideoBlob, offsets_ms: tuple[int, ...] = THUMBNAIL_OFFSETS_MS
) -> Thumbnail | None:
    """Derive a still-frame thumbnail from a finalized recording.

    Blocking; run it through asyncio.to_thread from async code.

    Args:
        blob: Finalized recording.
        offsets_ms: Offsets to try, in order.

    Returns:
        Thumbnail, or None when no attempt produced a frame.
    """
    if not blob.data:
        return None

    for attempt, offset_ms in enumerate(offsets_ms, start=1):
        try:
            thumbnail = _capture_at(blob, offset_ms)
        except Exception as e:  # cv2.error is not a RuntimeError subclass
            logger.debug(f"Thumbnail attempt {attempt} at {offset_ms}ms failed: {e}")
            continue
        if thumbnail is not None:
            return thumbnail
        logger.debug(f"Thumbnail attempt {attempt}: no frame at {offset_ms}ms")

    logger.warning(f"No thumbnail could be derived from {blob.size}-byte {blob.mime_type} video")
    return None
