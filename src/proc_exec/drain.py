"""Read a child's stdout and stderr to end-of-stream, concurrently.

Each stream gets its own thread so a child blocked writing one pipe never
waits on the parent reading the other.
"""

import threading

from proc_exec.errors import DrainFailure


class StreamDrain:
    """Accumulate everything readable from source until EOF.

    source only needs read(size) -> bytes. A zero-length read or a broken
    pipe ends the stream; any other OSError is kept in self.error.
    """

    def __init__(self, name: str, source, read_size: int = 65536, strip_cr: bool = False):
        self.name = name
        self.source = source
        self.read_size = read_size
        self.strip_cr = strip_cr
        self.buffer = bytearray()
        self.error: OSError | None = None
        self._thread = threading.Thread(target=self._run, name=f"drain-{name}", daemon=True)

    def _run(self) -> None:
        try:
            while True:
                try:
                    chunk = self.source.read(self.read_size)
                except BrokenPipeError:
                    break
                if not chunk:
                    break
                if self.strip_cr:
                    chunk = chunk.replace(b"\r", b"")
                self.buffer += chunk
        except OSError as e:
            self.error = e

    def start(self) -> "StreamDrain":
        self._thread.start()
        return self

    def join(self) -> None:
        self._thread.join()

    def result(self) -> bytes:
        if self.error is not None:
            raise DrainFailure(
                f"Failed reading child {self.name}: {self.error.strerror or self.error}",
                errno=self.error.errno,
            ) from self.error
        return bytes(self.buffer)


def drain(stdout, stderr, read_size: int = 65536, strip_cr: bool = False) -> tuple[bytes, bytes]:
    """Drain both sources to EOF and return (stdout_bytes, stderr_bytes).

    Raises DrainFailure if either read failed; partial output is discarded.
    """
    drains = [
        StreamDrain("stdout", stdout, read_size, strip_cr).start(),
        StreamDrain("stderr", stderr, read_size, strip_cr).start(),
    ]
    for d in drains:
        d.join()
    out, err = drains
    return out.result(), err.result()
