"""Error taxonomy for MindMirror.

- DeviceError: camera/microphone permission denied or no device (not retried)
- StorageError: local blob store open/read/write failure
- ValidationError: entry rejected before any request is sent
- RemoteError: entry repository unreachable, failed or malformed response
- CaptureStateError: capture operation called from the wrong state
"""

from __future__ import annotations


class MindMirrorError(Exception):
    """Base class for all MindMirror errors."""


class DeviceError(MindMirrorError):
    """Capture device could not be acquired."""


class StorageError(MindMirrorError):
    """Local blob store operation failed."""


class ValidationError(MindMirrorError):
    """Input failed validation; nothing was submitted."""


class RemoteError(MindMirrorError):
    """Entry repository call failed.

    Attributes:
        status_code: HTTP status code when the failure came from a response.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CaptureStateError(MindMirrorError, RuntimeError):
    """Capture session operation is not valid in the current state."""
