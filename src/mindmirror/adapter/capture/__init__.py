"""Capture device adapters.

- base: stream/track/recorder contracts and mime negotiation
- synthetic: hardware-free test pattern device
- opencv: webcam device via cv2.VideoCapture
"""

from mindmirror.adapter.capture.base import (
    DEFAULT_MIME_PREFERENCES,
    MOTION_JPEG_MIME,
    CaptureDevice,
    MediaConstraints,
    MediaRecorder,
    MediaStream,
    MediaTrack,
    negotiate_mime_type,
)
from mindmirror.adapter.capture.opencv import OpenCVCaptureDevice
from mindmirror.adapter.capture.synthetic import SyntheticCaptureDevice

__all__ = [
    "DEFAULT_MIME_PREFERENCES",
    "MOTION_JPEG_MIME",
    "CaptureDevice",
    "MediaConstraints",
    "MediaRecorder",
    "MediaStream",
    "MediaTrack",
    "OpenCVCaptureDevice",
    "SyntheticCaptureDevice",
    "negotiate_mime_type",
]
