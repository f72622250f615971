"""Frame access for recorded videos via OpenCV.

OpenCV decodes from a path, so in-memory recordings are first written
to a temporary file by spooled_payload(). VideoReader then walks the
frames in order; there is no seeking, which keeps results identical for
containers that lack an index (raw Motion-JPEG, unfinalized webm).
"""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np

# Container suffixes so the decoder can pick a demuxer for spooled payloads
_MIME_SUFFIXES = {
    "video/webm": ".webm",
    "video/mp4": ".mp4",
    "video/x-msvideo": ".avi",
    "video/x-motion-jpeg": ".mjpeg",
    "video/quicktime": ".mov",
}

FALLBACK_FPS = 30.0


def suffix_for_mime(mime_type: str) -> str:
    """File suffix for a (possibly parameterized) video mime type."""
    base = mime_type.split(";", 1)[0].strip().lower()
    return _MIME_SUFFIXES.get(base, ".bin")


@contextmanager
def spooled_payload(data: bytes, mime_type: str) -> Iterator[Path]:
    """Write a payload to a temporary file, removed on exit.

    Args:
        data: Encoded video bytes.
        mime_type: Chooses the file suffix.

    Yields:
        Path of the temporary file.
    """
    fd, name = tempfile.mkstemp(prefix="mindmirror-", suffix=suffix_for_mime(mime_type))
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        path.unlink(missing_ok=True)


@dataclass(frozen=True)
class VideoInfo:
    """Container metadata as reported by the decoder."""

    fps: float
    frame_count: int
    width: int
    height: int

    @property
    def duration_ms(self) -> int:
        """Estimated duration; frame counts are approximate for some containers."""
        return int(self.frame_count / self.fps * 1000) if self.fps > 0 else 0


@dataclass
class Frame:
    """Decoded frame and its position in the stream."""

    index: int
    timestamp_ms: int
    bgr: np.ndarray


class VideoReader:
    """Sequential frame reader over a video file.

    Usage:
        with spooled_payload(blob.data, blob.mime_type) as path, VideoReader(path) as reader:
            frame = reader.frame_at(1000)
    """

    def __init__(self, video_path: Path):
        """Initialize video reader.

        Args:
            video_path: Video file to decode.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        self.path = Path(video_path)
        if not self.path.exists():
            raise FileNotFoundError(f"Video file not found: {video_path}")
        self._capture = None
        self._info: VideoInfo | None = None

    def __enter__(self) -> "VideoReader":
        try:
            import cv2
        except ImportError as e:
            raise RuntimeError("OpenCV (cv2) is required for video decoding") from e

        capture = cv2.VideoCapture(str(self.path))
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"Decoder could not open {self.path}")

        self._capture = capture
        self._info = VideoInfo(
            fps=capture.get(cv2.CAP_PROP_FPS) or FALLBACK_FPS,
            frame_count=int(capture.get(cv2.CAP_PROP_FRAME_COUNT)),
            width=int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    @property
    def info(self) -> VideoInfo:
        if self._info is None:
            raise RuntimeError("VideoReader must be used as context manager")
        return self._info

    def iter_frames(self, max_frames: int | None = None) -> Iterator[Frame]:
        """Yield frames from the current position until the stream ends.

        Args:
            max_frames: Stop after this many frames (None = all).
        """
        if self._capture is None:
            raise RuntimeError("VideoReader must be used as context manager")

        fps = self.info.fps
        index = 0
        while max_frames is None or index < max_frames:
            ok, bgr = self._capture.read()
            if not ok:
                return
            yield Frame(index=index, timestamp_ms=int(index / fps * 1000), bgr=bgr)
            index += 1

    def frame_at(self, offset_ms: int) -> Frame | None:
        """First frame whose timestamp is at or after offset_ms.

        Returns:
            The frame, or None if the video ends before offset_ms.
        """
        return next((f for f in self.iter_frames() if f.timestamp_ms >= offset_ms), None)
