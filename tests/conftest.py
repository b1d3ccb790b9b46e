from pathlib import Path

import pytest

from tmpcas import TemporaryStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path / "store"


@pytest.fixture
def store(root: Path):
    with TemporaryStore(root, cleanup_on_exit=False) as store:
        yield store
