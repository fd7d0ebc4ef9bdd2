"""Failure taxonomy — one exception per invocation, never partial results."""


class ExecError(RuntimeError):
    """Base class for all engine failures."""

    def __init__(self, message: str, errno: int | None = None):
        super().__init__(message)
        self.errno = errno


class SpawnFailure(ExecError):
    """Pipe or process creation failed."""


class DrainFailure(ExecError):
    """Reading a pipe failed with something other than end-of-stream."""


class WaitFailure(ExecError):
    """The OS could not report the child's terminal status."""


class ConfigError(ExecError):
    """Invalid configuration file or environment override."""
