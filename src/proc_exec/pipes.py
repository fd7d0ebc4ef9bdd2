"""POSIX pipe trio for a child's stdin/stdout/stderr.

os.pipe() descriptors are non-inheritable, so only the ends dup2'd onto the
child's standard streams survive its exec.
"""

import os
from dataclasses import dataclass

from proc_exec import log
from proc_exec.errors import SpawnFailure

READ = "read"
WRITE = "write"
STREAMS = ("stdin", "stdout", "stderr")


class PipeEndpoint:
    """One end of a pipe. Closed exactly once; later close() calls are no-ops."""

    def __init__(self, fd: int, stream: str, direction: str):
        self.fd = fd
        self.stream = stream
        self.direction = direction
        self.closed = False

    def __repr__(self):
        state = "closed" if self.closed else f"fd={self.fd}"
        return f"<PipeEndpoint {self.stream}/{self.direction} {state}>"

    def read(self, size: int) -> bytes:
        return os.read(self.fd, size)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        os.close(self.fd)


@dataclass
class Pipe:
    stream: str
    read_end: PipeEndpoint
    write_end: PipeEndpoint

    @property
    def child_end(self) -> PipeEndpoint:
        """The end wired to the child's standard stream."""
        return self.read_end if self.stream == "stdin" else self.write_end

    @property
    def parent_end(self) -> PipeEndpoint:
        return self.write_end if self.stream == "stdin" else self.read_end

    def close(self) -> None:
        self.read_end.close()
        self.write_end.close()


def _resize(fd: int, size: int) -> None:
    """Grow the pipe buffer where the kernel allows it (Linux F_SETPIPE_SZ)."""
    import fcntl

    setpipe = getattr(fcntl, "F_SETPIPE_SZ", None)
    if setpipe is None:
        return
    try:
        current = fcntl.fcntl(fd, fcntl.F_GETPIPE_SZ)
        if current < size:
            fcntl.fcntl(fd, setpipe, size)
    except OSError as e:
        log.debug(f"pipe resize to {size} refused: {e.strerror}")


class PipeSet:
    """Owns the three pipes from creation until every endpoint is closed."""

    def __init__(self, stdin: Pipe, stdout: Pipe, stderr: Pipe):
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr

    @classmethod
    def create(cls, buffer_size: int | None = None) -> "PipeSet":
        """Create stdin/stdout/stderr pipes. Raises SpawnFailure, leaking nothing."""
        created = []
        try:
            for stream in STREAMS:
                r, w = os.pipe()
                created.append(Pipe(stream, PipeEndpoint(r, stream, READ), PipeEndpoint(w, stream, WRITE)))
        except OSError as e:
            for pipe in created:
                pipe.close()
            raise SpawnFailure(f"Couldn't create {STREAMS[len(created)]} pipe: {e.strerror}", errno=e.errno) from e

        pipes = cls(*created)
        if buffer_size:
            for pipe in (pipes.stdout, pipes.stderr):
                _resize(pipe.write_end.fd, buffer_size)
        return pipes

    def __iter__(self):
        return iter((self.stdin, self.stdout, self.stderr))

    def child_fds(self) -> tuple[int, int, int]:
        """Descriptors to dup2 onto the child's fds 0, 1 and 2."""
        return tuple(pipe.child_end.fd for pipe in self)

    def hand_off(self) -> None:
        """Close the parent's copies of the child ends, plus the unused stdin writer.

        Once the child exits, the read ends then observe EOF.
        """
        for pipe in self:
            pipe.child_end.close()
        self.stdin.write_end.close()

    def close(self) -> None:
        for pipe in self:
            pipe.close()
