from __future__ import annotations

import atexit
import logging
import os
import pathlib
import re
import stat
import tempfile
from typing import IO, Iterator

from tmpcas.commit_strategies import CommitStrategiesRunner, CommitStrategy
from tmpcas.errors import BlobNotFoundError, StoreClosedError
from tmpcas.handle import Handle

from ._utils import (
    hash_and_copy,
    hasher_factory,
    read_chunks,
    remove_tree,
    unlink_quietly,
)

PathLikeArg = str | os.PathLike[str]

FILENAME_PREFIX = "tmpcas-"
FILENAME_SUFFIX = ".bin"

_BLOB_NAME = re.compile(
    re.escape(FILENAME_PREFIX) + r"([0-9a-f]+)" + re.escape(FILENAME_SUFFIX)
)

logger = logging.getLogger(__name__)


def _is_regular_file(path: pathlib.Path) -> bool:
    # symbolic links planted in the root are not blobs
    try:
        return stat.S_ISREG(os.lstat(path).st_mode)
    except FileNotFoundError:
        return False


class TemporaryStore:
    """Stores incoming streams to disk, addressed by the hash of their content.

    Blobs live for the lifetime of the store only: the blobs, the scratch area
    and the then empty root directory are removed on
    [`close()`][tmpcas.tmpcas.TemporaryStore.close], when leaving the store's
    `with` block, or (best-effort) when the interpreter exits. Files in `root`
    the store didn't create are left alone. Handles are therefore only valid
    for this instance's lifetime.

    Unless otherwise indicated, `TemporaryStore` APIs ***DON'T*** handle I/O
    exceptions that may be raised as part of normal operation.

    Attributes:
        root: Directory path used as root of storage space
        flush: Whether an existing `root` was wiped on construction
        algorithm: Name of the hash algorithm addressing blobs
        chunk_size: Size of the chunks input streams are read in
        commit_strategy: The
            [`CommitStrategy`][tmpcas.commit_strategies.CommitStrategiesRunner]
            promoting intermediates to blobs
        fmode: File permissions of stored blobs
        closed: Whether the store was closed

    Parameters:
        root: **Absolute** directory path used as root of storage space. If
            `None`, a fresh temporary directory is created.
        flush: Delete anything already in `root` before use.
        algorithm: `hashlib` algorithm name, or `"blake3"`.
        chunk_size: Bytes read from an input stream at a time.
        commit_strategy: See
            [`CommitStrategiesRunner`][tmpcas.commit_strategies.CommitStrategiesRunner].
        fmode: File mode set on new blobs. The default `0o400` allows only the
            owner to only read the file, guarding blobs against accidental writes.
        cleanup_on_exit: Register the store for removal at interpreter exit.

    Raises:
        AlgorithmUnavailableError: If `algorithm` is unavailable.
    """

    def __init__(
        self,
        root: PathLikeArg | None = None,
        flush: bool = False,
        *,
        algorithm: str = "sha1",
        chunk_size: int = 1024,
        commit_strategy: CommitStrategy = CommitStrategy.EXCLUSIVE_LINK,
        fmode: int = 0o400,
        cleanup_on_exit: bool = True,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

        self._new_hasher = hasher_factory(algorithm)
        self._algorithm = algorithm.lower()
        self._chunk_size = chunk_size
        self._commit_strategy = CommitStrategy(commit_strategy)
        self._fmode = fmode
        self._flush = flush
        self._closed = False
        self._commit_runner = CommitStrategiesRunner(self._fmode)

        if root is None:
            sync_root = pathlib.Path(tempfile.mkdtemp(prefix=FILENAME_PREFIX))
        else:
            sync_root = pathlib.Path(root)
            if not sync_root.is_absolute():
                raise ValueError("Store root must be an absolute path")
        self._root = sync_root.resolve()

        if flush and os.path.lexists(self._root):
            logger.debug("Flushing storage area %s", self._root)
            remove_tree(self._root)

        self._root.mkdir(parents=True, exist_ok=True)
        self._scratch_path.mkdir(exist_ok=True)

        self._cleanup_on_exit = cleanup_on_exit
        if cleanup_on_exit:
            atexit.register(self._cleanup)

        logger.debug("Storage area is %s", self._root)

    @property
    def root(self) -> str:
        """The store's root directory path"""
        return str(self._root)

    @property
    def _scratch_path(self) -> pathlib.Path:
        return self._root.joinpath(".scratch")

    @property
    def flush(self) -> bool:
        return self._flush

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def commit_strategy(self) -> CommitStrategy:
        return self._commit_strategy

    @property
    def fmode(self) -> int:
        """The mode set on *new* blobs in the store"""
        return self._fmode

    @property
    def closed(self) -> bool:
        return self._closed

    def store(self, stream: IO[bytes]) -> Handle:
        """Store the contents of `stream` using its content hash as address.

        `stream` is read once, to exhaustion, in `chunk_size` chunks. Each chunk
        is hashed and written to a private intermediate file in the same pass,
        which is then committed as the blob for its digest, or discarded if that
        blob already exists. The intermediate never outlives this call.

        Parameters:
            stream: Readable binary stream. It is not closed.

        Returns:
            Handle: The blob's handle. Storing equal content again returns an
            equal handle.
        """
        self._check_open()
        logger.debug("Enter store()")

        intermediate = tempfile.NamedTemporaryFile(
            dir=str(self._scratch_path),
            prefix=FILENAME_PREFIX,
            suffix=".tmp",
            delete=False,
        )
        intermediate_path = pathlib.Path(intermediate.name)

        try:
            with intermediate:
                digest = hash_and_copy(
                    stream, self._new_hasher(), intermediate, self._chunk_size
                )

            is_duplicate = self._commit_runner.run(
                self._commit_strategy, intermediate_path, self._location(digest)
            )
        finally:
            unlink_quietly(intermediate_path)

        if is_duplicate:
            logger.debug("Object for %s already exists in store.", digest)

        logger.debug("Exit store(): %s", digest)
        return Handle(digest)

    def store_path(self, pathlike: PathLikeArg) -> Handle:
        """Store contents of the file at `pathlike`."""
        with open(pathlike, "rb") as stream:
            return self.store(stream)

    def load(self, handle: Handle) -> IO[bytes]:
        """Return a binary stream over the blob of `handle`, positioned at its
        start. The caller is responsible for closing it.

        Raises:
            BlobNotFoundError: If no blob is stored for the handle.
        """
        self._check_open()
        path = self._location(handle.digest)

        try:
            return open(path, "rb")
        except FileNotFoundError as e:
            raise BlobNotFoundError(handle.digest, str(path)) from e

    def get_location(self, handle: Handle) -> str:
        """Return the `file://` URI the blob of `handle` is (or would be) stored
        at, without touching the file system."""
        return self._location(handle.digest).as_uri()

    def exists(self, handle: Handle) -> bool:
        """Check whether a blob for `handle` exists on disk."""
        return _is_regular_file(self._location(handle.digest))

    def handles(self) -> Iterator[Handle]:
        """Return generator that yields the handles of all stored blobs."""
        try:
            entries = list(os.scandir(self._root))
        except FileNotFoundError:
            return

        for entry in entries:
            match = _BLOB_NAME.fullmatch(entry.name)
            if match is not None and entry.is_file(follow_symlinks=False):
                yield Handle(match.group(1))

    def count(self) -> int:
        """Return count of the number of blobs in the store."""
        return sum(1 for _ in self.handles())

    def size(self) -> int:
        """Return the total size in bytes of all blobs in the store."""
        return sum(
            self._location(handle.digest).stat().st_size for handle in self.handles()
        )

    def compute_digest(self, stream: IO[bytes]) -> str:
        """Compute the digest of `stream` without storing it."""
        hasher = self._new_hasher()
        for data in read_chunks(stream, self._chunk_size):
            hasher.update(data)

        return hasher.hexdigest().lower()

    def corrupted(self) -> Iterator[tuple[Handle, str]]:
        """Return generator that yields blobs as `(handle, actual_digest)` where
        the blob's content no longer hashes to the digest it is stored under.

        Only external tampering with the store's directory can cause this.
        """
        for handle in self.handles():
            with self.load(handle) as stream:
                actual = self.compute_digest(stream)

            if actual != handle.digest:
                yield handle, actual

    def close(self) -> None:
        """Remove the store's blobs, its scratch directory and, if nothing else
        is left in it, the root directory.

        Files the store didn't create are never touched. Removal is best-effort:
        failures are logged, not raised. Calling `close` again does nothing.
        """
        if self._closed:
            return

        self._closed = True
        if self._cleanup_on_exit:
            atexit.unregister(self._cleanup)

        self._cleanup()

    def _cleanup(self) -> None:
        for handle in list(self.handles()):
            unlink_quietly(self._location(handle.digest))

        if not remove_tree(self._scratch_path) and os.path.lexists(self._scratch_path):
            logger.warning("Could not remove scratch area %s", self._scratch_path)

        try:
            self._root.rmdir()
        except FileNotFoundError:
            pass
        except OSError:
            # the root still holds files the store doesn't own
            logger.debug("Keeping storage area %s", self._root, exc_info=True)

    def _check_open(self) -> None:
        if self._closed:
            raise StoreClosedError(f"Store at {self._root} is closed")

    def _location(self, digest: str) -> pathlib.Path:
        """Build the blob path for a given digest."""
        return self._root.joinpath(FILENAME_PREFIX + digest + FILENAME_SUFFIX)

    def __enter__(self) -> TemporaryStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __contains__(self, handle: Handle) -> bool:
        """Return whether a blob for `handle` is in the store."""
        return self.exists(handle)

    def __iter__(self) -> Iterator[Handle]:
        """Iterate over the handles of all blobs in the store."""
        return self.handles()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(root={self.root!r}, algorithm={self._algorithm!r})"
