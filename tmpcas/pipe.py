from __future__ import annotations

import logging
import subprocess
import sys
import threading
from typing import IO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


class Pipe:
    """Relays bytes from `source` to `sink` on a daemon thread, e.g. to forward a
    child process's output.

    Data is moved in chunks as the source makes it available, and the sink is
    flushed after every chunk, so output from several pipes sharing a sink
    interleaves per chunk rather than per byte.

    Parameters:
        source: Binary stream read from.
        sink: Binary stream written to.
        close_source: Close `source` once the relay ends.
    """

    def __init__(self, source: IO[bytes], sink: IO[bytes], close_source: bool = False):
        self._source = source
        self._sink = sink
        self._close_source = close_source
        self._lock = threading.Lock()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self, name: str) -> Pipe:
        """Start relaying on a daemon thread called `name`.

        Does nothing if the pipe was already started.
        """
        with self._lock:
            if self._thread is not None:
                return self

            self._thread = threading.Thread(target=self._run, name=name, daemon=True)
            self._thread.start()

        return self

    def stop(self) -> None:
        """Ask the relay to stop after the chunk it is handling. Doesn't wait."""
        self._stopping.set()

    def join(self, timeout: float | None = None) -> None:
        """Wait for the relay thread to end."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _read(self) -> bytes:
        # read1 returns whatever is available instead of waiting for a full chunk
        read1 = getattr(self._source, "read1", None)
        if read1 is not None:
            return read1(CHUNK_SIZE)
        return self._source.read(CHUNK_SIZE)

    def _run(self) -> None:
        try:
            while not self._stopping.is_set():
                data = self._read()
                if not data:
                    break
                self._sink.write(data)
                self._sink.flush()
        except (OSError, ValueError):
            if not self._stopping.is_set():
                logger.exception("Relay %s failed", threading.current_thread().name)
        finally:
            if self._close_source:
                try:
                    self._source.close()
                except OSError as e:
                    logger.debug("Could not close relay source: %s", e)

    @classmethod
    def for_process(
        cls,
        process: subprocess.Popen[bytes],
        stdout: IO[bytes] | None = None,
        stderr: IO[bytes] | None = None,
        name: str = "pipe",
    ) -> list[Pipe]:
        """Start relays forwarding a child process's stdout and stderr to
        `stdout` and `stderr`, defaulting to this process's own.

        Only streams opened with `subprocess.PIPE` are relayed.
        """
        pipes = []

        if process.stdout is not None:
            sink = stdout if stdout is not None else sys.stdout.buffer
            pipes.append(cls(process.stdout, sink, close_source=True).start(f"{name}-stdout"))

        if process.stderr is not None:
            sink = stderr if stderr is not None else sys.stderr.buffer
            pipes.append(cls(process.stderr, sink, close_source=True).start(f"{name}-stderr"))

        return pipes
