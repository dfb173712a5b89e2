"""Error taxonomy shared by the quote collection and the sync subsystem."""

from __future__ import annotations


class QuoteSyncError(RuntimeError):
    """Base class for every error raised by quotesync."""


class ValidationError(QuoteSyncError):
    """A required quote field was empty on an explicit add."""


class NetworkError(QuoteSyncError):
    """The remote source could not be reached."""


class DecodeError(QuoteSyncError):
    """A remote payload or import file did not have the expected shape."""


class MalformedSnapshotError(DecodeError):
    """A remote snapshot repeated an identifier."""


class StorageError(QuoteSyncError):
    """Local persistence failed."""


__all__ = [
    "QuoteSyncError",
    "ValidationError",
    "NetworkError",
    "DecodeError",
    "MalformedSnapshotError",
    "StorageError",
]
