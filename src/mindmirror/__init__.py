"""MindMirror: personal video journaling.

Layers:
- adapter/   - device capture and media decoding (OpenCV)
- capture/   - recording session lifecycle
- storage/   - device-local blob store
- journal/   - entry repositories and the coordinator that joins both sides
"""

__version__ = "0.1.0"
