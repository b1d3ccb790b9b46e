# -*- coding: utf-8 -*-
"""tmpcas is a temporary content-addressable blob store. What does that mean?
Simply, that tmpcas saves incoming streams in a directory under the hash of
their content, and hands back that hash to retrieve them later.

Typical use cases for this kind of system are ones where:

- The same content is handed over many times and should be kept once.
- Data only has to outlive a single process (e.g. downloaded artifacts).
- Streams must be stored without holding them in memory.

Alongside the store, the package holds a filtering directory lister and a
stream relay for forwarding a child process's output.
"""

from .__meta__ import (
    __title__,
    __summary__,
    __version__,
    __author__,
    __email__,
    __license__,
)
from .commit_strategies import CommitStrategy
from .errors import (
    AlgorithmUnavailableError,
    BlobNotFoundError,
    ErrorKind,
    StoreClosedError,
    StoreError,
)
from .handle import Handle
from .tmpcas import TemporaryStore

__all__ = (
    "TemporaryStore",
    "Handle",
    "CommitStrategy",
    "ErrorKind",
    "StoreError",
    "BlobNotFoundError",
    "AlgorithmUnavailableError",
    "StoreClosedError",
)
