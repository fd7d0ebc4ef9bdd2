"""fork/exec backend with waitpid status decoding."""

import contextlib
import errno
import os

from proc_exec import log
from proc_exec.backend import ChildHandle, ProcessBackend
from proc_exec.command import LaunchPlan
from proc_exec.errors import SpawnFailure, WaitFailure
from proc_exec.pipes import PipeSet
from proc_exec.result import TerminationStatus

EXEC_FAILED = 127


def decode_wait_status(status: int) -> TerminationStatus:
    """Translate a raw waitpid() status word."""
    if os.WIFEXITED(status):
        return TerminationStatus.exited(os.WEXITSTATUS(status))
    if os.WIFSIGNALED(status):
        return TerminationStatus.signaled(os.WTERMSIG(status))
    if os.WIFSTOPPED(status):
        return TerminationStatus.stopped(os.WSTOPSIG(status))
    return TerminationStatus.unknown()


def _exec_args(plan: LaunchPlan, shell: str):
    """Resolve (execfn, file, argv, env) in the parent, before forking."""
    if plan.is_shell:
        return os.execv, shell, [os.path.basename(shell), "-c", plan.shell_line], None
    argv = list(plan.argv)
    env = plan.environ()
    if env is None:
        return os.execvp, argv[0], argv, None
    return os.execvpe, argv[0], argv, env


def _check_exec_args(file, argv, env) -> None:
    """Reject what exec would refuse, while still in the parent.

    Raises SpawnFailure for NUL bytes anywhere, and for empty or
    "="-containing environment keys.
    """
    problem = None
    for arg in (file, *argv):
        if "\0" in arg:
            problem = f"argument {arg!r} contains a NUL byte"
    for key, value in (env or {}).items():
        if not key or "=" in key or "\0" in key:
            problem = f"invalid environment name {key!r}"
        elif "\0" in value:
            problem = f"environment value for {key!r} contains a NUL byte"
    if problem:
        raise SpawnFailure(f"Failed to execute {file!r}: {problem}", errno=errno.EINVAL)


def _child(fds, error_fd, execfn, file, argv, env):
    """Runs in the forked child. Never returns normally; see PosixBackend.spawn.

    Any failure is written to error_fd as "<errno>:<message>".
    """
    try:
        for target, fd in enumerate(fds):
            os.dup2(fd, target)
        if env is None:
            execfn(file, argv)
        else:
            execfn(file, argv, env)
    except OSError as e:
        os.write(error_fd, f"{e.errno or 0}:{e.strerror or e}".encode(errors="replace"))
    except Exception as e:
        os.write(error_fd, f"0:{e}".encode(errors="replace"))


def _read_exec_report(fd: int) -> tuple[int, str] | None:
    """Return the child's (errno, message), or None if exec succeeded (pipe hit EOF)."""
    data = b""
    while True:
        chunk = os.read(fd, 512)
        if not chunk:
            break
        data += chunk
    if not data:
        return None
    code, _, message = data.decode(errors="replace").partition(":")
    return int(code), message


class PosixBackend(ProcessBackend):
    name = "posix"
    strips_carriage_returns = False

    def spawn(self, plan: LaunchPlan) -> ChildHandle:
        execfn, file, argv, env = _exec_args(plan, self.config.shell)
        _check_exec_args(file, argv, env)
        pipes = PipeSet.create(self.config.pipe_buffer_size)
        try:
            error_r, error_w = os.pipe()
        except OSError as e:
            pipes.close()
            raise SpawnFailure(f"Couldn't create exec status pipe: {e.strerror}", errno=e.errno) from e

        try:
            pid = os.fork()
        except OSError as e:
            pipes.close()
            os.close(error_r)
            os.close(error_w)
            raise SpawnFailure(f"Failed to fork for {plan.program!r}: {e.strerror}", errno=e.errno) from e

        if pid == 0:
            # Child: leave without unwinding the parent's interpreter state.
            try:
                _child(pipes.child_fds(), error_w, execfn, file, argv, env)
            finally:
                os._exit(EXEC_FAILED)

        os.close(error_w)
        pipes.hand_off()
        try:
            report = _read_exec_report(error_r)
        finally:
            os.close(error_r)

        if report is not None:
            pipes.close()
            with contextlib.suppress(ChildProcessError):
                os.waitpid(pid, 0)
            code, message = report
            raise SpawnFailure(f"Failed to execute {file!r}: {message}", errno=code or None)

        log.debug(f"spawned pid {pid}: {argv}")
        return ChildHandle(
            pid=pid,
            stdout=pipes.stdout.read_end,
            stderr=pipes.stderr.read_end,
            resources=list(pipes),
        )

    def wait(self, handle: ChildHandle) -> TerminationStatus:
        if handle.reaped:
            return handle.status
        try:
            _, status = os.waitpid(handle.pid, 0)
        except OSError as e:
            raise WaitFailure(f"Failed to wait for child process {handle.pid}: {e.strerror}", errno=e.errno) from e
        handle.status = decode_wait_status(status)
        return handle.status
