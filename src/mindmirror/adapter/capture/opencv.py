"""OpenCV webcam capture device.

Frames are read on a background thread at a fixed rate and appended to a
Motion-JPEG buffer; each requested chunk drains the buffer. OpenCV has
no microphone access, so streams from this device carry a video track
only.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time

from mindmirror.adapter.capture.base import (
    MOTION_JPEG_MIME,
    CaptureDevice,
    MediaConstraints,
    MediaRecorder,
    MediaStream,
    MediaTrack,
)
from mindmirror.core.errors import DeviceError

logger = logging.getLogger(__name__)


class VideoCaptureTrack(MediaTrack):
    """Camera track backed by a cv2.VideoCapture."""

    def __init__(self, capture, label: str):
        super().__init__("video", label, on_stop=capture.release)
        self.capture = capture


class OpenCVRecorder(MediaRecorder):
    """Motion-JPEG recorder reading from a VideoCaptureTrack."""

    def __init__(self, stream: MediaStream, mime_type: str, *, fps: float, jpeg_quality: int):
        super().__init__(stream, mime_type)
        track = stream.track("video")
        if not isinstance(track, VideoCaptureTrack):
            raise DeviceError("OpenCV recorder requires an OpenCV video track")
        self._track = track
        self._interval = 1.0 / fps if fps > 0 else 1.0 / 15
        self._jpeg_quality = jpeg_quality
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._running = threading.Event()
        self._capturing = threading.Event()
        self._thread: threading.Thread | None = None

    def _on_start(self) -> None:
        self._running.set()
        self._capturing.set()
        self._thread = threading.Thread(
            target=self._capture_loop, name="mindmirror-opencv-recorder", daemon=True
        )
        self._thread.start()

    def _on_pause(self) -> None:
        self._capturing.clear()

    def _on_resume(self) -> None:
        self._capturing.set()

    def _capture_loop(self) -> None:
        import cv2

        params = [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality]
        while self._running.is_set():
            started = time.perf_counter()
            if self._capturing.is_set():
                ok, frame = self._track.capture.read()
                if ok:
                    encoded_ok, encoded = cv2.imencode(".jpg", frame, params)
                    if encoded_ok:
                        with self._lock:
                            self._buffer.extend(encoded.tobytes())
                else:
                    logger.debug("Camera returned no frame")
            remaining = self._interval - (time.perf_counter() - started)
            if remaining > 0:
                time.sleep(remaining)

    def _drain(self) -> bytes:
        with self._lock:
            data = bytes(self._buffer)
            self._buffer.clear()
        return data

    async def _read_chunk(self) -> bytes:
        return self._drain()

    async def _flush(self) -> bytes:
        self._running.clear()
        self._capturing.clear()
        if self._thread is not None:
            await asyncio.to_thread(self._thread.join, 5.0)
            self._thread = None
        return self._drain()


class OpenCVCaptureDevice(CaptureDevice):
    """USB/built-in webcam through cv2.VideoCapture."""

    default_mime_type = MOTION_JPEG_MIME

    def __init__(self, index: int = 0, *, fps: float = 15.0, jpeg_quality: int = 80):
        self.index = index
        self.fps = fps
        self.jpeg_quality = jpeg_quality

    def _open_capture(self, constraints: MediaConstraints):
        import cv2

        capture = cv2.VideoCapture(self.index)
        if not capture.isOpened():
            capture.release()
            return None
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)
        return capture

    async def open(self, constraints: MediaConstraints) -> MediaStream:
        if not constraints.video:
            raise DeviceError("OpenCV device can only capture video")
        try:
            capture = await asyncio.to_thread(self._open_capture, constraints)
        except ImportError as e:
            raise DeviceError("OpenCV (cv2) is required for webcam capture") from e
        if capture is None:
            raise DeviceError(f"No camera available at index {self.index}")
        if constraints.audio:
            logger.info("OpenCV device has no microphone access; recording video only")
        return MediaStream([VideoCaptureTrack(capture, f"OpenCV camera {self.index}")])

    def is_type_supported(self, mime_type: str) -> bool:
        return mime_type == MOTION_JPEG_MIME

    def create_recorder(self, stream: MediaStream, mime_type: str) -> OpenCVRecorder:
        return OpenCVRecorder(stream, mime_type, fps=self.fps, jpeg_quality=self.jpeg_quality)
