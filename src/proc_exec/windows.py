"""CreateProcess backend, via subprocess.Popen's pipe-handle plumbing.

Popen creates inheritable child-side pipe handles, passes them through
STARTUPINFO, and closes its copies right after CreateProcess, which is the
hand-off the drain relies on to see ERROR_BROKEN_PIPE at child exit.
"""

import subprocess

from proc_exec import log
from proc_exec.backend import ChildHandle, ProcessBackend
from proc_exec.command import LaunchPlan
from proc_exec.errors import SpawnFailure, WaitFailure
from proc_exec.result import TerminationStatus

CREATE_NEW_CONSOLE = getattr(subprocess, "CREATE_NEW_CONSOLE", 0x00000010)
STARTF_USESHOWWINDOW = getattr(subprocess, "STARTF_USESHOWWINDOW", 0x00000001)
SW_HIDE = getattr(subprocess, "SW_HIDE", 0)


def command_line(plan: LaunchPlan, comspec: str = "cmd") -> str:
    """Build the CreateProcess command line.

    Shell lines run as: cmd /C "<line>"; the outer quotes let cmd keep the
    quoted program path intact.
    """
    if plan.is_shell:
        return f'{comspec} /C "{plan.shell_line}"'
    return subprocess.list2cmdline(plan.argv)


def _startupinfo():
    """Hide the new console window."""
    info = subprocess.STARTUPINFO()
    info.dwFlags |= STARTF_USESHOWWINDOW
    info.wShowWindow = SW_HIDE
    return info


class WindowsBackend(ProcessBackend):
    name = "windows"
    strips_carriage_returns = True

    def spawn(self, plan: LaunchPlan) -> ChildHandle:
        cmdline = command_line(plan, self.config.comspec)
        try:
            proc = subprocess.Popen(
                cmdline,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
                env=plan.environ(),
                creationflags=CREATE_NEW_CONSOLE,
                startupinfo=_startupinfo(),
            )
        except (OSError, ValueError) as e:
            raise SpawnFailure(
                f"Failed to execute {plan.program!r}: {getattr(e, 'strerror', None) or e}",
                errno=getattr(e, "errno", None),
            ) from e

        # The child gets no input.
        proc.stdin.close()
        log.debug(f"spawned pid {proc.pid}: {cmdline}")
        return ChildHandle(
            pid=proc.pid,
            stdout=proc.stdout,
            stderr=proc.stderr,
            process=proc,
            resources=[proc.stdout, proc.stderr],
        )

    def wait(self, handle: ChildHandle) -> TerminationStatus:
        if handle.reaped:
            return handle.status
        try:
            code = handle.process.wait()
        except OSError as e:
            raise WaitFailure(
                f"Couldn't get exit code from child process {handle.pid}: {e.strerror or e}",
                errno=e.errno,
            ) from e
        handle.status = TerminationStatus.exited(code)
        return handle.status
