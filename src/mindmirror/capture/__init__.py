"""Recording session lifecycle."""

from mindmirror.capture.session import (
    CaptureResult,
    CaptureSession,
    CaptureState,
    CaptureStatus,
)

__all__ = ["CaptureResult", "CaptureSession", "CaptureState", "CaptureStatus"]
