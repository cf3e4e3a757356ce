"""Exceptions raised by blobsync."""


class BlobSyncError(Exception):
    """Base exception for all blobsync errors."""


class BlobNotFoundError(BlobSyncError):
    """Remote object or container does not exist.

    This is an expected outcome during change detection and drives the
    upload decision; it is not a failure on its own.
    """


class BlobTransportError(BlobSyncError):
    """Network or storage service failure. Retryable per transfer policy."""


class LocalFilesystemError(BlobSyncError):
    """Local I/O failure while reading or writing a file."""


class BlobSyncConfigError(BlobSyncError):
    """Missing or invalid configuration. Fatal, raised before any work starts."""
