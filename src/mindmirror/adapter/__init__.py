"""Adapter module for external devices and IO boundaries.

Adapters wrap external dependencies behind domain-focused interfaces.
Business logic should use adapters rather than calling OpenCV or device
APIs directly.

Structure:
- adapter/media/    - video decoding and thumbnail extraction (OpenCV)
- adapter/capture/  - camera/microphone acquisition and chunked encoding
"""
