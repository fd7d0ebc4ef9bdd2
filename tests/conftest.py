"""Shared test fixtures."""

import pytest


class FakeStream:
    """In-memory pipe read end: yields chunks, then EOF (or raises)."""

    def __init__(self, chunks=(), error=None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False
        self.close_calls = 0

    def read(self, size):
        if self.chunks:
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        return b""

    def close(self):
        self.close_calls += 1
        self.closed = True


@pytest.fixture
def fake_backend():
    """A ProcessBackend whose spawn/wait are scripted per test."""
    from proc_exec.backend import ChildHandle, ProcessBackend
    from proc_exec.result import TerminationStatus

    class FakeBackend(ProcessBackend):
        name = "fake"

        def __init__(self, config=None):
            super().__init__(config)
            self.plans = []
            self.handles = []
            self.stdout = []
            self.stderr = []
            self.stdout_error = None
            self.stderr_error = None
            self.status = TerminationStatus.exited(0)
            self.spawn_error = None
            self.wait_error = None
            self.wait_calls = 0

        def spawn(self, plan):
            self.plans.append(plan)
            if self.spawn_error is not None:
                raise self.spawn_error
            out = FakeStream(self.stdout, self.stdout_error)
            err = FakeStream(self.stderr, self.stderr_error)
            handle = ChildHandle(pid=4242, stdout=out, stderr=err, resources=[out, err])
            self.handles.append(handle)
            return handle

        def wait(self, handle):
            self.wait_calls += 1
            if self.wait_error is not None:
                raise self.wait_error
            handle.status = self.status
            return self.status

    return FakeBackend()
