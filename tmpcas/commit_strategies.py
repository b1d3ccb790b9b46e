from __future__ import annotations

import errno
import logging
import os
import pathlib
import shutil
from enum import Enum

logger = logging.getLogger(__name__)

# errors meaning "this filesystem can't hard link", not "the blob exists"
_NO_LINK_ERRNOS = frozenset(
    code
    for code in (
        getattr(errno, "EPERM", None),
        getattr(errno, "EXDEV", None),
        getattr(errno, "EMLINK", None),
        getattr(errno, "ENOTSUP", None),
        getattr(errno, "EOPNOTSUPP", None),
        getattr(errno, "ENOSYS", None),
    )
    if code is not None
)


class CommitStrategy(str, Enum):
    """Available CommitStrategies used as input for
    [`CommitStrategiesRunner`][tmpcas.commit_strategies.CommitStrategiesRunner]

    This Enum's members' names are equivalent to the commit methods in
       [`CommitStrategiesRunner`][tmpcas.commit_strategies.CommitStrategiesRunner]
    """

    EXCLUSIVE_LINK = "EXCLUSIVE_LINK"
    RENAME = "RENAME"
    COPY = "COPY"


class CommitStrategiesRunner:
    """A class responsible for defining and running the different available
    `CommitStrategies`.

    A commit strategy is responsible for promoting a fully written and hashed
    intermediate file to its final, digest-named blob path, unless a blob is
    already there. The intermediate must be closed before the commit runs.

    Strategies differ in how they behave when two writers commit the same digest
    at the same time. Read the docs of the individual strategies for their
    specific considerations.

    The caller always owns the intermediate's removal. A strategy may consume it
    (`rename`), in which case there is nothing left to remove.

        Args:
            fmode: Permissions to set on newly created blobs
    """

    def __init__(self, fmode: int) -> None:
        self._fmode = fmode

    def run(
        self,
        commit_strategy: CommitStrategy,
        intermediate: pathlib.Path,
        blob_path: pathlib.Path,
    ) -> bool:
        """Run said commit strategy.

        Returns:
            is_duplicate: `True` if a blob already existed at `blob_path` and
            the intermediate was left for discarding.
        """
        match commit_strategy:
            case CommitStrategy.EXCLUSIVE_LINK:
                return self.exclusive_link(intermediate, blob_path)
            case CommitStrategy.RENAME:
                return self.rename(intermediate, blob_path)
            case CommitStrategy.COPY:
                return self.copy(intermediate, blob_path)

        raise ValueError(f"Unknown commit strategy {commit_strategy!r}")

    def exclusive_link(self, intermediate: pathlib.Path, blob_path: pathlib.Path) -> bool:
        """Exclusive link hard links the blob path to the intermediate.

        Creating a link fails if the target exists, so checking for a duplicate
        and creating the blob are a single atomic filesystem operation. Of any
        number of concurrent writers exactly one creates the blob and the others
        see a duplicate. Readers never observe a partial blob.

        `intermediate` and `blob_path` need to be on the same file system. If the
        file system doesn't support hard links, falls back to `rename`.
        """
        try:
            os.link(intermediate, blob_path)
        except FileExistsError:
            return True
        except OSError as e:
            if e.errno not in _NO_LINK_ERRNOS:
                raise
            logger.debug("Hard links unsupported (%s), falling back to rename", e)
            return self.rename(intermediate, blob_path)

        os.chmod(blob_path, self._fmode)
        return False

    def rename(self, intermediate: pathlib.Path, blob_path: pathlib.Path) -> bool:
        """Rename checks for an existing blob and, if there is none, atomically
        renames the intermediate into place.

        Two concurrent writers of the same digest may both find no blob and both
        rename; the last one wins. As their contents are identical this is
        harmless, and readers never observe a partial blob.

        `intermediate` and `blob_path` need to be on the same file system.
        """
        if blob_path.is_file():
            return True

        os.chmod(intermediate, self._fmode)
        os.replace(intermediate, blob_path)
        return False

    def copy(self, intermediate: pathlib.Path, blob_path: pathlib.Path) -> bool:
        """Copy checks for an existing blob and, if there is none, copies the
        intermediate's bytes to the blob path.

        The blob is created exclusively so a concurrent writer can never truncate
        it, but while the copy runs a concurrent reader may see a partial blob.
        This strategy may make sense when neither links nor atomic renames are
        available between the scratch directory and the store root.
        """
        if blob_path.is_file():
            return True

        with open(intermediate, "rb") as src:
            try:
                dst = open(blob_path, "xb")
            except FileExistsError:
                return True

            try:
                with dst:
                    shutil.copyfileobj(src, dst)
            except BaseException:
                # a partial blob would break content addressing
                blob_path.unlink(missing_ok=True)
                raise

        os.chmod(blob_path, self._fmode)
        return False
