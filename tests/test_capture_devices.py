"""Tests for capture device adapters and mime negotiation."""

import asyncio
import importlib.util
import threading
import time

import numpy as np
import pytest

from mindmirror.adapter.capture import (
    DEFAULT_MIME_PREFERENCES,
    MOTION_JPEG_MIME,
    MediaConstraints,
    MediaStream,
    MediaTrack,
    SyntheticCaptureDevice,
    negotiate_mime_type,
)
from mindmirror.adapter.capture.opencv import OpenCVRecorder, VideoCaptureTrack
from mindmirror.adapter.capture.synthetic import synthetic_frame
from mindmirror.core.errors import DeviceError


def _run(coro):
    return asyncio.run(coro)


def opencv_available() -> bool:
    """Check if opencv is available."""
    return importlib.util.find_spec("cv2") is not None


class TestNegotiation:
    """Recording format selection."""

    def test_first_supported_preference_wins(self):
        """vp8 is chosen when vp9 is unsupported."""
        device = SyntheticCaptureDevice(
            supported_types=("video/webm;codecs=vp8,opus", "video/webm", "video/mp4")
        )
        assert negotiate_mime_type(device) == "video/webm;codecs=vp8,opus"

    def test_preference_order(self):
        """vp9 outranks everything else."""
        device = SyntheticCaptureDevice(supported_types=DEFAULT_MIME_PREFERENCES)
        assert negotiate_mime_type(device) == "video/webm;codecs=vp9,opus"

    def test_falls_back_to_device_default(self):
        """Nothing preferred is supported: device default is used."""
        device = SyntheticCaptureDevice(supported_types=())
        assert negotiate_mime_type(device) == MOTION_JPEG_MIME


class TestMediaStream:
    """Track lifecycle."""

    def test_stop_releases_every_track(self):
        """Stopping a stream ends all tracks and runs their release hooks."""
        released = []
        stream = MediaStream(
            [
                MediaTrack("video", on_stop=lambda: released.append("video")),
                MediaTrack("audio", on_stop=lambda: released.append("audio")),
            ]
        )
        assert stream.active

        stream.stop()
        stream.stop()

        assert released == ["video", "audio"]
        assert not stream.active
        assert all(t.ready_state == "ended" for t in stream.get_tracks())

    def test_failing_track_does_not_block_others(self):
        """One track failing to stop still stops the rest."""

        def explode():
            raise OSError("device busy")

        audio = MediaTrack("audio")
        stream = MediaStream([MediaTrack("video", on_stop=explode), audio])
        stream.stop()

        assert audio.ready_state == "ended"


class TestSyntheticDevice:
    """Hardware-free capture device."""

    def test_acquires_video_and_audio(self):
        """Default constraints give one track per input."""
        device = SyntheticCaptureDevice()
        stream = _run(device.open(MediaConstraints()))
        assert sorted(t.kind for t in stream.get_tracks()) == ["audio", "video"]

    def test_permission_denied(self):
        """Denied permission raises DeviceError."""
        device = SyntheticCaptureDevice(permission_granted=False)
        with pytest.raises(DeviceError, match="denied"):
            _run(device.open(MediaConstraints()))

    def test_no_device(self):
        """Missing hardware raises DeviceError."""
        device = SyntheticCaptureDevice(available=False)
        with pytest.raises(DeviceError, match="No camera"):
            _run(device.open(MediaConstraints()))

    def test_recorder_state_machine(self):
        """Chunks flow only while recording; invalid transitions raise."""
        device = SyntheticCaptureDevice(encode_frames=False, frames_per_chunk=2)

        async def scenario():
            stream = await device.open(MediaConstraints())
            recorder = device.create_recorder(stream, MOTION_JPEG_MIME)
            with pytest.raises(RuntimeError):
                recorder.pause()
            recorder.start()
            first = await recorder.request_data()
            recorder.pause()
            paused = await recorder.request_data()
            recorder.resume()
            final = await recorder.stop()
            return recorder, first, paused, final

        recorder, first, paused, final = _run(scenario())
        assert first == b"frame-0;frame-1;"
        assert paused == b""
        assert final == b"frame-2;"
        assert recorder.state == "inactive"
        assert recorder.emitted == [first, final]

    def test_frame_pattern_shape(self):
        """Test pattern frames are BGR at the requested size."""
        frame = synthetic_frame(32, 16, 3)
        assert frame.shape == (16, 32, 3)

    @pytest.mark.skipif(not opencv_available(), reason="opencv not available")
    def test_encoded_chunks_are_jpeg(self):
        """Encoded frames are JPEG images."""
        device = SyntheticCaptureDevice(width=32, height=16, frames_per_chunk=1)

        async def scenario():
            stream = await device.open(MediaConstraints())
            recorder = device.create_recorder(stream, MOTION_JPEG_MIME)
            recorder.start()
            chunk = await recorder.request_data()
            await recorder.stop()
            return chunk

        chunk = _run(scenario())
        assert chunk.startswith(b"\xff\xd8")
        assert chunk.endswith(b"\xff\xd9")


class FakeVideoCapture:
    """Stands in for cv2.VideoCapture; counts reads and releases."""

    def __init__(self, ok: bool = True):
        self.ok = ok
        self.reads = 0
        self.released = False

    def read(self):
        self.reads += 1
        if not self.ok:
            return False, None
        return True, np.full((8, 8, 3), self.reads % 256, dtype=np.uint8)

    def release(self):
        self.released = True


def _recorder(capture, fps: float = 200.0) -> OpenCVRecorder:
    stream = MediaStream([VideoCaptureTrack(capture, "fake camera")])
    return OpenCVRecorder(stream, MOTION_JPEG_MIME, fps=fps, jpeg_quality=80)


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def _recorder_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == "mindmirror-opencv-recorder"]


class TestOpenCVRecorder:
    """Webcam recorder driven by a fake capture, no hardware needed."""

    def test_requires_opencv_track(self):
        """A stream without an OpenCV video track is rejected."""
        stream = MediaStream([MediaTrack("video", "plain")])
        with pytest.raises(DeviceError):
            OpenCVRecorder(stream, MOTION_JPEG_MIME, fps=15, jpeg_quality=80)

    @pytest.mark.skipif(not opencv_available(), reason="opencv not available")
    def test_request_drains_buffer(self):
        """Each request returns whole JPEG frames captured since the last one."""
        capture = FakeVideoCapture()
        recorder = _recorder(capture)

        async def scenario():
            recorder.start()
            await _wait_until(lambda: capture.reads >= 2)
            first = await recorder.request_data()
            seen = capture.reads
            await _wait_until(lambda: capture.reads >= seen + 2)
            final = await recorder.stop()
            return first, final

        first, final = _run(scenario())
        for chunk in (first, final):
            assert chunk.startswith(b"\xff\xd8")
            assert chunk.endswith(b"\xff\xd9")
        assert recorder.state == "inactive"

    @pytest.mark.skipif(not opencv_available(), reason="opencv not available")
    def test_no_frames_while_paused(self):
        """The camera is not read while paused; resume picks up again."""
        capture = FakeVideoCapture()
        recorder = _recorder(capture)

        async def scenario():
            recorder.start()
            await _wait_until(lambda: capture.reads >= 1)
            recorder.pause()
            await asyncio.sleep(0.05)
            paused_reads = capture.reads
            paused_chunk = await recorder.request_data()
            await asyncio.sleep(0.1)
            still_paused = capture.reads == paused_reads
            recorder.resume()
            await _wait_until(lambda: capture.reads > paused_reads)
            await recorder.stop()
            return paused_chunk, still_paused

        paused_chunk, still_paused = _run(scenario())
        assert paused_chunk == b""
        assert still_paused

    @pytest.mark.skipif(not opencv_available(), reason="opencv not available")
    def test_stop_joins_capture_thread(self):
        """Stop ends the background thread; releasing is left to the track."""
        capture = FakeVideoCapture()
        recorder = _recorder(capture)

        async def scenario():
            recorder.start()
            await _wait_until(lambda: capture.reads >= 1)
            assert _recorder_threads()
            await recorder.stop()

        _run(scenario())
        assert _recorder_threads() == []
        assert capture.released is False

        recorder.stream.stop()
        assert capture.released is True

    @pytest.mark.skipif(not opencv_available(), reason="opencv not available")
    def test_failed_reads_produce_no_data(self):
        """Frames the camera fails to deliver are skipped."""
        capture = FakeVideoCapture(ok=False)
        recorder = _recorder(capture)

        async def scenario():
            recorder.start()
            await _wait_until(lambda: capture.reads >= 3)
            chunk = await recorder.request_data()
            final = await recorder.stop()
            return chunk, final

        assert _run(scenario()) == (b"", b"")
