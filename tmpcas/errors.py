from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of failure a [`TemporaryStore`][tmpcas.tmpcas.TemporaryStore] reports
    through its own exception types.

    Plain I/O failures are not wrapped; they surface as the built-in `OSError`
    family.
    """

    NOT_FOUND = "NOT_FOUND"
    ALGORITHM_UNAVAILABLE = "ALGORITHM_UNAVAILABLE"
    CLOSED = "CLOSED"


class StoreError(Exception):
    """Base class of the store's own errors."""

    kind: ErrorKind


class BlobNotFoundError(StoreError, FileNotFoundError):
    """No blob is committed for the requested digest. Callers should treat this
    as a cache miss."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, digest: str, path: str | None = None) -> None:
        super().__init__(f"No blob stored for digest: {digest}")
        self.digest = digest
        self.filename = path


class AlgorithmUnavailableError(StoreError, ValueError):
    """The requested hash algorithm is not provided by this runtime. This is a
    configuration error and retrying will not help."""

    kind = ErrorKind.ALGORITHM_UNAVAILABLE

    def __init__(self, algorithm: str) -> None:
        super().__init__(f"Hash algorithm unavailable: {algorithm}")
        self.algorithm = algorithm


class StoreClosedError(StoreError, RuntimeError):
    """The store was closed and its blobs removed."""

    kind = ErrorKind.CLOSED
