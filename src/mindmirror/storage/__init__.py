"""Device-local storage for recorded videos."""

from mindmirror.storage.blob_store import LocalBlobStore

__all__ = ["LocalBlobStore"]
