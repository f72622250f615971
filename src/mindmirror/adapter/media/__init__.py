"""Media adapters for recorded video payloads.

- video_decode: sequential frame access for files and spooled payloads
- thumbnail: still-frame extraction for the blob store side-car
"""

from mindmirror.adapter.media.thumbnail import derive_thumbnail
from mindmirror.adapter.media.video_decode import (
    Frame,
    VideoInfo,
    VideoReader,
    spooled_payload,
    suffix_for_mime,
)

__all__ = [
    "Frame",
    "VideoInfo",
    "VideoReader",
    "derive_thumbnail",
    "spooled_payload",
    "suffix_for_mime",
]
