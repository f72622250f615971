"""Capture device abstractions.

A device hands out a MediaStream (one track per acquired input) and a
MediaRecorder that encodes the stream into chunks. Chunks concatenated in
order form the finished recording.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Sequence

logger = logging.getLogger(__name__)

MOTION_JPEG_MIME = "video/x-motion-jpeg"

# Preference order for negotiated recording formats
DEFAULT_MIME_PREFERENCES: tuple[str, ...] = (
    "video/webm;codecs=vp9,opus",
    "video/webm;codecs=vp8,opus",
    "video/webm",
    "video/mp4",
)

RecorderState = Literal["inactive", "recording", "paused"]


@dataclass(frozen=True)
class MediaConstraints:
    """Requested inputs for a capture stream."""

    video: bool = True
    audio: bool = True
    width: int = 1280
    height: int = 720


class MediaTrack:
    """One acquired hardware input (camera or microphone)."""

    def __init__(self, kind: str, label: str = "", on_stop: Callable[[], None] | None = None):
        self.kind = kind
        self.label = label
        self._on_stop = on_stop
        self._ended = False

    @property
    def ready_state(self) -> str:
        return "ended" if self._ended else "live"

    def stop(self) -> None:
        """Release the underlying input. Safe to call twice."""
        if self._ended:
            return
        self._ended = True
        if self._on_stop is not None:
            self._on_stop()

    def __repr__(self) -> str:
        return f"MediaTrack(kind={self.kind!r}, label={self.label!r}, state={self.ready_state})"


class MediaStream:
    """Set of tracks acquired together."""

    def __init__(self, tracks: Iterable[MediaTrack]):
        self._tracks = list(tracks)

    def get_tracks(self) -> list[MediaTrack]:
        return list(self._tracks)

    def track(self, kind: str) -> MediaTrack | None:
        for track in self._tracks:
            if track.kind == kind:
                return track
        return None

    @property
    def active(self) -> bool:
        return any(t.ready_state == "live" for t in self._tracks)

    def stop(self) -> None:
        """Stop every track, releasing the hardware."""
        for track in self._tracks:
            try:
                track.stop()
            except Exception:
                logger.exception(f"Failed to stop {track.kind} track {track.label!r}")


class MediaRecorder(ABC):
    """Chunked encoder over a MediaStream.

    State machine: inactive -> recording <-> paused -> inactive.
    Subclasses implement the hooks; state checks live here.
    """

    def __init__(self, stream: MediaStream, mime_type: str):
        self.stream = stream
        self.mime_type = mime_type
        self.state: RecorderState = "inactive"

    def start(self) -> None:
        if self.state != "inactive":
            raise RuntimeError(f"Recorder cannot start from state {self.state}")
        self.state = "recording"
        self._on_start()

    def pause(self) -> None:
        if self.state != "recording":
            raise RuntimeError(f"Recorder cannot pause from state {self.state}")
        self.state = "paused"
        self._on_pause()

    def resume(self) -> None:
        if self.state != "paused":
            raise RuntimeError(f"Recorder cannot resume from state {self.state}")
        self.state = "recording"
        self._on_resume()

    async def request_data(self) -> bytes:
        """Return data encoded since the previous request (empty unless recording)."""
        if self.state != "recording":
            return b""
        return await self._read_chunk()

    async def stop(self) -> bytes:
        """Stop encoding and return the final chunk."""
        if self.state == "inactive":
            return b""
        self.state = "inactive"
        return await self._flush()

    def _on_start(self) -> None:
        pass

    def _on_pause(self) -> None:
        pass

    def _on_resume(self) -> None:
        pass

    @abstractmethod
    async def _read_chunk(self) -> bytes:  # pragma: no cover - interface only
        raise NotImplementedError

    @abstractmethod
    async def _flush(self) -> bytes:  # pragma: no cover - interface only
        raise NotImplementedError


class CaptureDevice(ABC):
    """Source of camera/microphone streams."""

    default_mime_type: str = MOTION_JPEG_MIME

    @abstractmethod
    async def open(self, constraints: MediaConstraints) -> MediaStream:
        """Acquire the requested inputs.

        Raises:
            DeviceError: If permission is denied or no device is available.
        """
        raise NotImplementedError

    @abstractmethod
    def is_type_supported(self, mime_type: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def create_recorder(self, stream: MediaStream, mime_type: str) -> MediaRecorder:
        raise NotImplementedError


def negotiate_mime_type(
    device: CaptureDevice, preferences: Sequence[str] = DEFAULT_MIME_PREFERENCES
) -> str:
    """Pick the first preferred mime type the device supports.

    Falls back to the device's default type when none is supported.
    """
    for mime_type in preferences:
        if device.is_type_supported(mime_type):
            return mime_type
    logger.debug(
        f"No preferred recording type supported; using {device.default_mime_type}"
    )
    return device.default_mime_type
