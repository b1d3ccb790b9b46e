import errno
import os
from pathlib import Path

import pytest

from tmpcas.commit_strategies import CommitStrategiesRunner, CommitStrategy


@pytest.fixture
def runner() -> CommitStrategiesRunner:
    return CommitStrategiesRunner(fmode=0o400)


@pytest.fixture
def intermediate(tmp_path: Path) -> Path:
    path = tmp_path / "intermediate.tmp"
    path.write_bytes(b"content")
    return path


@pytest.mark.parametrize("strategy", list(CommitStrategy))
def test_commit_new_blob(
    runner: CommitStrategiesRunner, intermediate: Path, tmp_path: Path, strategy
):
    blob = tmp_path / "blob.bin"

    assert runner.run(strategy, intermediate, blob) is False
    assert blob.read_bytes() == b"content"
    assert blob.stat().st_mode & 0o777 == 0o400


@pytest.mark.parametrize("strategy", list(CommitStrategy))
def test_commit_duplicate(
    runner: CommitStrategiesRunner, intermediate: Path, tmp_path: Path, strategy
):
    blob = tmp_path / "blob.bin"
    blob.write_bytes(b"content")

    assert runner.run(strategy, intermediate, blob) is True
    assert blob.read_bytes() == b"content"
    assert intermediate.exists()


def test_rename_consumes_intermediate(
    runner: CommitStrategiesRunner, intermediate: Path, tmp_path: Path
):
    runner.rename(intermediate, tmp_path / "blob.bin")

    assert not intermediate.exists()


@pytest.mark.parametrize("strategy", [CommitStrategy.EXCLUSIVE_LINK, CommitStrategy.COPY])
def test_commit_keeps_intermediate(
    runner: CommitStrategiesRunner, intermediate: Path, tmp_path: Path, strategy
):
    runner.run(strategy, intermediate, tmp_path / "blob.bin")

    assert intermediate.exists()


def test_link_falls_back_to_rename(
    runner: CommitStrategiesRunner,
    intermediate: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    def no_links(src, dst):
        raise OSError(errno.EPERM, "Operation not permitted")

    monkeypatch.setattr(os, "link", no_links)
    blob = tmp_path / "blob.bin"

    assert runner.exclusive_link(intermediate, blob) is False
    assert blob.read_bytes() == b"content"
    assert not intermediate.exists()


def test_link_propagates_other_errors(
    runner: CommitStrategiesRunner,
    intermediate: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    def disk_full(src, dst):
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr(os, "link", disk_full)

    with pytest.raises(OSError) as excinfo:
        runner.exclusive_link(intermediate, tmp_path / "blob.bin")

    assert excinfo.value.errno == errno.ENOSPC


def test_failed_copy_leaves_no_partial_blob(
    runner: CommitStrategiesRunner,
    intermediate: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
):
    def broken_copy(src, dst):
        dst.write(b"cont")
        raise OSError(errno.ENOSPC, "No space left on device")

    monkeypatch.setattr("shutil.copyfileobj", broken_copy)
    blob = tmp_path / "blob.bin"

    with pytest.raises(OSError):
        runner.copy(intermediate, blob)

    assert not blob.exists()
