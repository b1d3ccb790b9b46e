from __future__ import annotations

import hashlib
import logging
import os
import pathlib
from typing import IO, Any, Callable, Iterator, Protocol

from blake3 import blake3

from .errors import AlgorithmUnavailableError

logger = logging.getLogger(__name__)


class Hasher(Protocol):
    def update(self, data: bytes, /) -> Any:
        ...

    def hexdigest(self) -> str:
        ...


HasherFactory = Callable[[], Hasher]


def hasher_factory(algorithm: str) -> HasherFactory:
    """Return a zero-argument callable building fresh hashers for `algorithm`.

    Raises:
        AlgorithmUnavailableError: If the runtime doesn't provide `algorithm`, or
            it has no fixed digest length (e.g. `shake_128`).
    """
    name = algorithm.lower()

    if name == "blake3":
        return blake3

    if name.startswith("shake_"):
        raise AlgorithmUnavailableError(algorithm)

    try:
        hashlib.new(name, usedforsecurity=False)
    except (ValueError, TypeError) as e:
        raise AlgorithmUnavailableError(algorithm) from e

    return lambda: hashlib.new(name, usedforsecurity=False)


def read_chunks(stream: IO[bytes], size: int) -> Iterator[bytes]:
    """Yield `size` sized chunks from `stream` until it is exhausted.

    Raises:
        BlockingIOError: If `stream` is non-blocking and has no data ready, as a
            partial read would be taken for the whole content.
    """
    while True:
        data = stream.read(size)
        if data is None:
            raise BlockingIOError("Stream has no data available, it must be blocking")
        if data == b"":
            break
        yield data


def hash_and_copy(
    source: IO[bytes], hasher: Hasher, destination: IO[bytes], chunk_size: int
) -> str:
    """Consume `source` once, feeding every chunk to `hasher` and writing it to
    `destination` in the same pass.

    Returns:
        The lowercase hexdigest of everything read.
    """
    for data in read_chunks(source, chunk_size):
        hasher.update(data)
        destination.write(data)

    return hasher.hexdigest().lower()


def unlink_quietly(path: pathlib.Path) -> None:
    """Remove `path` if present. Failures are logged, never raised."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not remove %s: %s", path, e)


def remove_tree(path: pathlib.Path) -> bool:
    """Best-effort recursive removal of `path`.

    Removal of `path` itself is always attempted first, which handles files,
    empty directories and symbolic links (which are never followed). A directory
    that resists removal has its children removed, then is retried once.

    Returns:
        Whether `path` was removed.
    """
    if not os.path.lexists(path):
        return False

    is_dir = path.is_dir() and not path.is_symlink()

    try:
        if is_dir:
            path.rmdir()
        else:
            path.unlink()
        return True
    except OSError:
        if not is_dir:
            logger.debug("Could not remove %s", path, exc_info=True)
            return False

    try:
        children = list(path.iterdir())
    except OSError:
        logger.debug("Could not list %s", path, exc_info=True)
        return False

    for child in children:
        remove_tree(child)

    try:
        path.rmdir()
        return True
    except OSError:
        logger.debug("Could not remove %s", path, exc_info=True)
        return False
