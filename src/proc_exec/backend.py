"""Platform backend interface and the single place a backend is chosen."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from proc_exec import drain as drain_mod
from proc_exec import result
from proc_exec.command import LaunchPlan
from proc_exec.config import EngineConfig
from proc_exec.errors import ConfigError


@dataclass
class ChildHandle:
    """A spawned child plus the parent-side read ends it owns.

    Lives from spawn until release(); every resource is closed exactly once.
    """

    pid: int
    stdout: Any
    stderr: Any
    process: Any = None
    resources: list = field(default_factory=list)
    status: result.TerminationStatus | None = None
    released: bool = False

    @property
    def reaped(self) -> bool:
        return self.status is not None

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        for res in self.resources:
            res.close()


class ProcessBackend(ABC):
    """spawn → drain → wait → encode, one implementation per platform."""

    name = "abstract"
    strips_carriage_returns = False

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

    @property
    def strip_cr(self) -> bool:
        if self.config.strip_carriage_returns is None:
            return self.strips_carriage_returns
        return self.config.strip_carriage_returns

    @abstractmethod
    def spawn(self, plan: LaunchPlan) -> ChildHandle:
        """Start the child with stdout/stderr wired to pipes. Raises SpawnFailure."""

    def drain(self, handle: ChildHandle) -> tuple[bytes, bytes]:
        """Read both pipes to end-of-stream. Raises DrainFailure."""
        return drain_mod.drain(
            handle.stdout,
            handle.stderr,
            read_size=self.config.read_size,
            strip_cr=self.strip_cr,
        )

    @abstractmethod
    def wait(self, handle: ChildHandle) -> result.TerminationStatus:
        """Block until the child exits. Raises WaitFailure."""

    def encode(self, status: result.TerminationStatus) -> int:
        return result.encode(status)


def _posix(config):
    from proc_exec.posix import PosixBackend

    return PosixBackend(config)


def _windows(config):
    from proc_exec.windows import WindowsBackend

    return WindowsBackend(config)


BACKENDS = {"posix": _posix, "windows": _windows}


def resolve_name(name: str = "auto") -> str:
    if name == "auto":
        return "windows" if os.name == "nt" else "posix"
    return name


def get_backend(config: EngineConfig | None = None) -> ProcessBackend:
    """Instantiate the configured backend. Raises ConfigError off its platform."""
    config = config or EngineConfig()
    name = resolve_name(config.backend)
    native = resolve_name("auto")
    if name != native:
        raise ConfigError(f"Backend {name!r} cannot run on this platform (os.name={os.name!r}, use {native!r})")
    return BACKENDS[name](config)
