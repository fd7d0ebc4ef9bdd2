"""Termination status, normalized exit codes, and the result record."""

import enum
from dataclasses import dataclass

SIGNAL_OFFSET = 128
UNKNOWN_EXIT_CODE = 255


class StatusKind(enum.Enum):
    EXITED = "exited"
    SIGNALED = "signaled"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TerminationStatus:
    kind: StatusKind
    value: int | None = None

    @classmethod
    def exited(cls, code: int) -> "TerminationStatus":
        return cls(StatusKind.EXITED, code)

    @classmethod
    def signaled(cls, signum: int) -> "TerminationStatus":
        return cls(StatusKind.SIGNALED, signum)

    @classmethod
    def stopped(cls, signum: int) -> "TerminationStatus":
        return cls(StatusKind.STOPPED, signum)

    @classmethod
    def unknown(cls) -> "TerminationStatus":
        return cls(StatusKind.UNKNOWN)


def encode(status: TerminationStatus) -> int:
    """Map a termination status to one integer.

    Exited(c) -> c, Signaled(s) and Stopped(s) -> 128 + s, anything else -> 255.
    """
    if status.kind is StatusKind.EXITED:
        return status.value
    if status.kind in (StatusKind.SIGNALED, StatusKind.STOPPED):
        return SIGNAL_OFFSET + status.value
    return UNKNOWN_EXIT_CODE


@dataclass(frozen=True)
class ExecutionResult:
    stdout: str
    stderr: str
    exit_code: int

    def as_record(self) -> dict:
        """Return the boundary record: exit-code, stdout, stderr."""
        return {"exit-code": self.exit_code, "stdout": self.stdout, "stderr": self.stderr}
