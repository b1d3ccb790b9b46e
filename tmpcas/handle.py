from __future__ import annotations

import re
from dataclasses import dataclass

_HEX_DIGEST = re.compile(r"[0-9a-f]+")


@dataclass(frozen=True)
class Handle:
    """Identifier of a blob in a [`TemporaryStore`][tmpcas.tmpcas.TemporaryStore].

    A handle only wraps the lowercase hex digest of the blob's content, so it is
    safe to log or serialize and can be rebuilt from the digest alone. It stays
    valid for `load` only while the store that issued it is alive.

    Attributes:
        digest: Lowercase hexdigest of the blob's contents.
    """

    digest: str

    def __post_init__(self) -> None:
        if not isinstance(self.digest, str) or not _HEX_DIGEST.fullmatch(self.digest):
            raise ValueError(f"Invalid digest {self.digest!r}: expected lowercase hex")

    def __str__(self) -> str:
        return self.digest
