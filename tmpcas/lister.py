from __future__ import annotations

import os
import pathlib
import re
from typing import Iterable, Iterator

PatternArg = str | re.Pattern[str]


def _compile(patterns: Iterable[PatternArg]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


def _walk(
    directory: pathlib.Path,
    parent_name: str = "",
    visited: set[tuple[int, int]] | None = None,
) -> Iterator[str]:
    # Unreadable directories yield nothing instead of failing the listing.
    try:
        directory_stat = os.stat(directory)
        entries = list(os.scandir(directory))
    except OSError:
        return

    # symbolic links are followed, each directory is listed once
    if visited is None:
        visited = set()
    key = (directory_stat.st_dev, directory_stat.st_ino)
    if key in visited:
        return
    visited.add(key)

    for entry in entries:
        if entry.is_dir():
            yield from _walk(
                pathlib.Path(entry.path), f"{parent_name}{entry.name}/", visited
            )
        else:
            yield f"{parent_name}{entry.name}"


class DirectoryLister:
    """Lists the files found under a directory, recursively.

    Files are named relative to `directory` with `/` separators, and each
    pattern must match such a name in full. With no `includes` every file is
    included; a file matching any of `excludes` is left out. Hidden files are
    never listed.

    Parameters:
        directory: Base directory from where files are listed.
        includes: Regular expressions selecting the files to list.
        excludes: Regular expressions removing files from the listing.
    """

    def __init__(
        self,
        directory: str | os.PathLike[str],
        includes: Iterable[PatternArg] = (),
        excludes: Iterable[PatternArg] = (),
    ) -> None:
        if directory is None:
            raise TypeError("directory must not be None")

        self._directory = pathlib.Path(directory).absolute()
        self._includes = _compile(includes)
        self._excludes = _compile(excludes)

    @property
    def directory(self) -> str:
        return str(self._directory)

    def list(self) -> list[str]:
        """Return the `file://` URIs of the matching files, sorted by name."""
        return [
            self._directory.joinpath(name).as_uri()
            for name in sorted(_walk(self._directory))
            if self._matches_includes(name)
            and not self._matches_excludes(name)
            and not self._is_hidden(name)
        ]

    def _matches_includes(self, name: str) -> bool:
        if not self._includes:
            return True
        return any(pattern.fullmatch(name) for pattern in self._includes)

    def _matches_excludes(self, name: str) -> bool:
        return any(pattern.fullmatch(name) for pattern in self._excludes)

    @staticmethod
    def _is_hidden(name: str) -> bool:
        return name.startswith(".") or name.rsplit("/", 1)[-1].startswith(".")


def list_files(
    directory: str | os.PathLike[str],
    includes: Iterable[PatternArg] = (),
    excludes: Iterable[PatternArg] = (),
) -> list[str]:
    """Shortcut for `DirectoryLister(directory, includes, excludes).list()`."""
    return DirectoryLister(directory, includes, excludes).list()
