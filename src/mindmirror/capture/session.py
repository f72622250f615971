"""Capture session: one recording from device acquisition to stored blob.

States: IDLE -> ACQUIRING -> RECORDING -> (PAUSED <-> RECORDING)
        -> FINALIZING -> IDLE

While recording, two background tasks run: one drains the recorder into
the chunk buffer every chunk_interval, the other publishes the elapsed
time every tick_interval. Both stop while paused. On stop the last
chunk is collected before any track is released, the chunks are joined
into one blob, a thumbnail is attempted, and the blob is written to the
local store under a fresh key.

Whatever happens, the session ends in IDLE with its tracks stopped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Sequence

from mindmirror.adapter.capture.base import (
    DEFAULT_MIME_PREFERENCES,
    CaptureDevice,
    MediaConstraints,
    MediaRecorder,
    MediaStream,
    negotiate_mime_type,
)
from mindmirror.adapter.media.thumbnail import derive_thumbnail
from mindmirror.core.errors import CaptureStateError, DeviceError
from mindmirror.core.formatting import format_time
from mindmirror.core.identity import generate_blob_key
from mindmirror.models.domain import Thumbnail, VideoBlob
from mindmirror.storage.blob_store import LocalBlobStore

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[str, str], "Awaitable[None] | None"]


class CaptureState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    RECORDING = "recording"
    PAUSED = "paused"
    FINALIZING = "finalizing"


@dataclass(frozen=True)
class CaptureStatus:
    """State-change or timer event published to subscribers."""

    state: CaptureState
    elapsed_seconds: int

    @property
    def duration(self) -> str:
        return format_time(self.elapsed_seconds)


@dataclass(frozen=True)
class CaptureResult:
    """Outcome of a finalized recording."""

    key: str
    duration: str
    elapsed_seconds: int
    mime_type: str
    size: int
    thumbnail: Thumbnail | None


class CaptureSession:
    """Lifecycle of a single recording.

    Only one session per view should be active; starting a session that
    is not idle raises CaptureStateError.

    Usage:
        async with CaptureSession(device, store, on_complete=coordinator.attach_video) as s:
            await s.start()
            ...
            result = await s.stop()
    """

    def __init__(
        self,
        device: CaptureDevice,
        blob_store: LocalBlobStore,
        *,
        on_complete: CompletionCallback | None = None,
        constraints: MediaConstraints = MediaConstraints(),
        mime_preferences: Sequence[str] = DEFAULT_MIME_PREFERENCES,
        chunk_interval: float = 1.0,
        tick_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        key_factory: Callable[[], str] = generate_blob_key,
        thumbnailer: Callable[[VideoBlob], Thumbnail | None] = derive_thumbnail,
    ):
        """Initialize capture session.

        Args:
            device: Camera/microphone source.
            blob_store: Destination for finalized recordings.
            on_complete: Called with (key, duration) after the blob is stored.
            constraints: Inputs requested from the device.
            mime_preferences: Recording formats in preference order.
            chunk_interval: Seconds between buffered chunks.
            tick_interval: Seconds between elapsed-time updates.
            clock: Monotonic time source in seconds.
            key_factory: Generates the blob key at finalize time.
            thumbnailer: Blocking thumbnail extractor.
        """
        self.device = device
        self.blob_store = blob_store
        self.on_complete = on_complete
        self.constraints = constraints
        self.mime_preferences = tuple(mime_preferences)
        self.chunk_interval = chunk_interval
        self.tick_interval = tick_interval
        self._clock = clock
        self._key_factory = key_factory
        self._thumbnailer = thumbnailer

        self._state = CaptureState.IDLE
        self._stream: MediaStream | None = None
        self._recorder: MediaRecorder | None = None
        self._chunks: list[bytes] = []
        self._chunk_error: Exception | None = None
        self._chunk_stop: asyncio.Event | None = None
        self._chunk_task: asyncio.Task[None] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._accumulated = 0.0
        self._active_since: float | None = None
        self._subscribers: set[asyncio.Queue[CaptureStatus]] = set()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def stream(self) -> MediaStream | None:
        return self._stream

    @property
    def mime_type(self) -> str | None:
        return self._recorder.mime_type if self._recorder else None

    @property
    def elapsed_seconds(self) -> int:
        elapsed = self._accumulated
        if self._active_since is not None:
            elapsed += self._clock() - self._active_since
        return max(0, int(elapsed))

    def snapshot(self) -> CaptureStatus:
        return CaptureStatus(state=self._state, elapsed_seconds=self.elapsed_seconds)

    async def updates(self) -> AsyncIterator[CaptureStatus]:
        """Yield the current status, then every state change and timer tick."""
        queue: asyncio.Queue[CaptureStatus] = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield self.snapshot()
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    def _publish(self) -> None:
        status = self.snapshot()
        for queue in self._subscribers:
            queue.put_nowait(status)

    def _set_state(self, state: CaptureState) -> None:
        self._state = state
        self._publish()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Acquire the device and begin recording.

        Raises:
            CaptureStateError: If the session is not idle.
            DeviceError: If the device cannot be acquired.
        """
        if self._state is not CaptureState.IDLE:
            raise CaptureStateError(f"Cannot start recording while {self._state.value}")

        self._set_state(CaptureState.ACQUIRING)
        try:
            self._stream = await self.device.open(self.constraints)
            mime_type = negotiate_mime_type(self.device, self.mime_preferences)
            recorder = self.device.create_recorder(self._stream, mime_type)
            recorder.start()
        except BaseException:
            await self._cleanup()
            raise

        self._recorder = recorder
        self._chunks = []
        self._chunk_error = None
        self._accumulated = 0.0
        self._begin_span()
        self._set_state(CaptureState.RECORDING)
        logger.info(f"Recording started ({mime_type})")

    async def pause(self) -> None:
        """Suspend capture and the elapsed-time timer."""
        if self._state is not CaptureState.RECORDING:
            raise CaptureStateError(f"Cannot pause while {self._state.value}")
        await self._halt_tasks()
        self._recorder.pause()
        self._end_span()
        self._set_state(CaptureState.PAUSED)

    async def resume(self) -> None:
        """Resume capture after pause()."""
        if self._state is not CaptureState.PAUSED:
            raise CaptureStateError(f"Cannot resume while {self._state.value}")
        self._recorder.resume()
        self._begin_span()
        self._set_state(CaptureState.RECORDING)

    async def stop(self) -> CaptureResult:
        """Finish recording, store the blob and report (key, duration).

        Raises:
            CaptureStateError: If not recording or paused.
            DeviceError: If the recorder failed while buffering.
            StorageError: If the blob could not be stored.
        """
        if self._state not in (CaptureState.RECORDING, CaptureState.PAUSED):
            raise CaptureStateError(f"Cannot stop while {self._state.value}")

        try:
            await self._halt_tasks()
            final_chunk = await self._recorder.stop()
            if final_chunk:
                self._chunks.append(final_chunk)
            self._end_span()
            self._release_stream()

            if self._chunk_error is not None:
                raise DeviceError(f"Recording failed: {self._chunk_error}") from self._chunk_error

            elapsed = self.elapsed_seconds
            duration = format_time(elapsed)
            blob = VideoBlob(data=b"".join(self._chunks), mime_type=self._recorder.mime_type)
            self._chunks = []

            self._set_state(CaptureState.FINALIZING)
            thumbnail = await self._derive_thumbnail(blob)

            key = self._key_factory()
            await self.blob_store.put(key, blob, thumbnail)
            logger.info(f"Recording finalized as {key} ({duration}, {blob.size} bytes)")

            if self.on_complete is not None:
                outcome = self.on_complete(key, duration)
                if inspect.isawaitable(outcome):
                    await outcome

            return CaptureResult(
                key=key,
                duration=duration,
                elapsed_seconds=elapsed,
                mime_type=blob.mime_type,
                size=blob.size,
                thumbnail=thumbnail,
            )
        finally:
            await self._cleanup()

    async def close(self) -> None:
        """Abandon any recording and release the device. Idempotent."""
        await self._cleanup()

    async def __aenter__(self) -> "CaptureSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin_span(self) -> None:
        self._active_since = self._clock()
        self._chunk_stop = asyncio.Event()
        self._chunk_task = asyncio.create_task(self._collect_chunks(self._chunk_stop))
        self._timer_task = asyncio.create_task(self._tick())

    def _end_span(self) -> None:
        if self._active_since is not None:
            self._accumulated += self._clock() - self._active_since
            self._active_since = None

    async def _halt_tasks(self) -> None:
        """Stop the background tasks; an in-flight chunk is still collected."""
        timer, self._timer_task = self._timer_task, None
        if timer is not None:
            timer.cancel()
            await asyncio.gather(timer, return_exceptions=True)

        chunk_task, self._chunk_task = self._chunk_task, None
        if chunk_task is not None:
            self._chunk_stop.set()
            await asyncio.gather(chunk_task, return_exceptions=True)

    async def _collect_chunks(self, stop: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.chunk_interval)
                return
            except asyncio.TimeoutError:
                pass
            try:
                data = await self._recorder.request_data()
            except Exception as e:
                logger.error(f"Recorder failed while buffering: {e}")
                self._chunk_error = e
                return
            if data:
                self._chunks.append(data)
                logger.debug(f"Buffered chunk {len(self._chunks)} ({len(data)} bytes)")

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            self._publish()

    async def _derive_thumbnail(self, blob: VideoBlob) -> Thumbnail | None:
        try:
            return await asyncio.to_thread(self._thumbnailer, blob)
        except Exception as e:
            logger.warning(f"Thumbnail derivation failed: {e}")
            return None

    def _release_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    async def _cleanup(self) -> None:
        await self._halt_tasks()
        recorder, self._recorder = self._recorder, None
        if recorder is not None and recorder.state != "inactive":
            try:
                await recorder.stop()
            except Exception:
                logger.exception("Failed to stop recorder during cleanup")
        self._end_span()
        self._release_stream()
        self._chunks = []
        if self._state is not CaptureState.IDLE:
            self._set_state(CaptureState.IDLE)
