import io
import subprocess
import sys
import threading

from tmpcas.pipe import Pipe


class BlockingSource(io.RawIOBase):
    """Hands out one chunk, then blocks until released."""

    def __init__(self) -> None:
        self.release = threading.Event()
        self._sent = False

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if not self._sent:
            self._sent = True
            return b"first"
        self.release.wait(5)
        return b"late"


def test_relays_until_eof():
    source = io.BytesIO(b"x" * 20000)
    sink = io.BytesIO()

    pipe = Pipe(source, sink).start("test-pipe")
    pipe.join(5)

    assert not pipe.running
    assert sink.getvalue() == b"x" * 20000
    assert not source.closed


def test_closes_source():
    source = io.BytesIO(b"data")
    pipe = Pipe(source, io.BytesIO(), close_source=True).start("test-pipe")
    pipe.join(5)

    assert source.closed


def test_start_is_idempotent():
    source = io.BytesIO(b"data")
    sink = io.BytesIO()

    pipe = Pipe(source, sink)
    assert pipe.start("one") is pipe
    assert pipe.start("two") is pipe
    pipe.join(5)

    assert sink.getvalue() == b"data"


def test_stop():
    source = BlockingSource()
    sink = io.BytesIO()

    pipe = Pipe(source, sink).start("test-pipe")
    pipe.stop()
    source.release.set()
    pipe.join(5)

    assert not pipe.running
    assert sink.getvalue() in (b"", b"first", b"firstlate")


def test_read_error_ends_relay():
    class Broken(io.RawIOBase):
        def readable(self) -> bool:
            return True

        def read(self, size: int = -1) -> bytes:
            raise OSError("broken")

    pipe = Pipe(Broken(), io.BytesIO()).start("test-pipe")
    pipe.join(5)

    assert not pipe.running


def test_for_process():
    process = subprocess.Popen(
        [
            sys.executable,
            "-c",
            "import sys; sys.stdout.write('out'); sys.stderr.write('err')",
        ],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    stdout = io.BytesIO()
    stderr = io.BytesIO()

    pipes = Pipe.for_process(process, stdout, stderr, name="child")
    process.wait(10)
    for pipe in pipes:
        pipe.join(5)

    assert stdout.getvalue() == b"out"
    assert stderr.getvalue() == b"err"
