"""Synthetic capture device for development and testing.

Produces a moving gradient test pattern encoded as Motion-JPEG chunks,
or small opaque byte chunks when frame encoding is disabled. Permission
denial and missing hardware can be simulated.
"""

from __future__ import annotations

import asyncio

import numpy as np

from mindmirror.adapter.capture.base import (
    MOTION_JPEG_MIME,
    CaptureDevice,
    MediaConstraints,
    MediaRecorder,
    MediaStream,
    MediaTrack,
)
from mindmirror.core.errors import DeviceError


def synthetic_frame(width: int, height: int, index: int) -> np.ndarray:
    """Gradient test pattern shifted by frame index (BGR)."""
    horizontal = np.linspace(0, 255, width, dtype=np.uint8)
    vertical = np.linspace(0, 255, height, dtype=np.uint8).reshape(-1, 1)
    red = np.tile(horizontal, (height, 1))
    green = np.roll(red, index * 4, axis=1)
    blue = np.tile(vertical, (1, width))
    return np.stack([blue, green, red], axis=2).astype(np.uint8)


class SyntheticRecorder(MediaRecorder):
    """Recorder emitting frames_per_chunk frames per requested chunk.

    Every emitted chunk is kept in `emitted` so callers can compare the
    finished recording against what the device produced.
    """

    def __init__(
        self,
        stream: MediaStream,
        mime_type: str,
        *,
        width: int,
        height: int,
        frames_per_chunk: int,
        encode_frames: bool,
    ):
        super().__init__(stream, mime_type)
        self.width = width
        self.height = height
        self.frames_per_chunk = frames_per_chunk
        self.encode_frames = encode_frames
        self.emitted: list[bytes] = []
        self._frame_index = 0

    def _encode(self, count: int) -> bytes:
        parts: list[bytes] = []
        for _ in range(count):
            index = self._frame_index
            self._frame_index += 1
            if not self.encode_frames:
                parts.append(f"frame-{index};".encode())
                continue

            import cv2

            ok, encoded = cv2.imencode(".jpg", synthetic_frame(self.width, self.height, index))
            if ok:
                parts.append(encoded.tobytes())
        chunk = b"".join(parts)
        if chunk:
            self.emitted.append(chunk)
        return chunk

    async def _read_chunk(self) -> bytes:
        if not self.encode_frames:
            return self._encode(self.frames_per_chunk)
        return await asyncio.to_thread(self._encode, self.frames_per_chunk)

    async def _flush(self) -> bytes:
        # Trailing frame delivered with the stop event
        return self._encode(1)


class SyntheticCaptureDevice(CaptureDevice):
    """Capture device that needs no hardware.

    Attributes:
        streams: Every stream handed out, for inspection.
        recorders: Every recorder created, for inspection.
    """

    def __init__(
        self,
        *,
        width: int = 320,
        height: int = 180,
        frames_per_chunk: int = 10,
        permission_granted: bool = True,
        available: bool = True,
        supported_types: tuple[str, ...] = (MOTION_JPEG_MIME,),
        encode_frames: bool = True,
    ):
        self.width = width
        self.height = height
        self.frames_per_chunk = frames_per_chunk
        self.permission_granted = permission_granted
        self.available = available
        self.supported_types = supported_types
        self.encode_frames = encode_frames
        self.streams: list[MediaStream] = []
        self.recorders: list[SyntheticRecorder] = []

    async def open(self, constraints: MediaConstraints) -> MediaStream:
        if not self.available:
            raise DeviceError("No camera or microphone found")
        if not self.permission_granted:
            raise DeviceError("Permission to use camera and microphone was denied")

        tracks = []
        if constraints.video:
            tracks.append(MediaTrack("video", "Synthetic camera"))
        if constraints.audio:
            tracks.append(MediaTrack("audio", "Synthetic microphone"))
        stream = MediaStream(tracks)
        self.streams.append(stream)
        return stream

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type in self.supported_types

    def create_recorder(self, stream: MediaStream, mime_type: str) -> SyntheticRecorder:
        recorder = SyntheticRecorder(
            stream,
            mime_type,
            width=self.width,
            height=self.height,
            frames_per_chunk=self.frames_per_chunk,
            encode_frames=self.encode_frames,
        )
        self.recorders.append(recorder)
        return recorder
