"""Run one command end to end: build → spawn → drain → wait → encode."""

from proc_exec import command, log
from proc_exec.backend import ChildHandle, ProcessBackend, get_backend
from proc_exec.config import EngineConfig
from proc_exec.errors import WaitFailure
from proc_exec.result import ExecutionResult


def _reap_after_failure(backend: ProcessBackend, handle: ChildHandle) -> None:
    """Collect the child so no zombie outlives a failed invocation."""
    try:
        backend.wait(handle)
    except WaitFailure as e:
        log.debug(f"could not reap pid {handle.pid}: {e}")


def run(
    spec: command.CommandSpec,
    config: EngineConfig | None = None,
    backend: ProcessBackend | None = None,
) -> ExecutionResult:
    """Execute a CommandSpec. Returns a complete result or raises ExecError.

    Every pipe endpoint is closed and the child reaped on all paths.
    """
    if config is None:
        config = backend.config if backend is not None else EngineConfig()
    backend = backend or get_backend(config)
    plan = command.build(spec)

    handle = backend.spawn(plan)
    drained = False
    try:
        out, err = backend.drain(handle)
        drained = True
        status = backend.wait(handle)
    finally:
        # Closing the read ends first lets a still-writing child die on EPIPE.
        handle.release()
        if not drained:
            _reap_after_failure(backend, handle)

    code = backend.encode(status)
    log.debug(
        f"pid {handle.pid} {status.kind.value} -> exit-code {code} "
        f"(stdout {len(out)} bytes, stderr {len(err)} bytes)"
    )
    return ExecutionResult(
        stdout=out.decode(config.encoding, config.errors),
        stderr=err.decode(config.encoding, config.errors),
        exit_code=code,
    )


def execute(
    cmd: str,
    args=(),
    env=(),
    *,
    shell: bool = False,
    config: EngineConfig | None = None,
    backend: ProcessBackend | None = None,
) -> ExecutionResult:
    """Run cmd with args; env (KEY=VALUE entries) replaces the inherited environment.

    shell=True joins cmd and args into one line for the system shell and
    ignores env.
    """
    if shell:
        spec = command.CommandSpec.for_shell(cmd, args)
    else:
        spec = command.CommandSpec.for_program(cmd, args, env)
    return run(spec, config=config, backend=backend)


def exec_command(cmd: str, args=(), **kwargs) -> ExecutionResult:
    """Run a literal command line through the system shell."""
    return execute(cmd, args, shell=True, **kwargs)


def exec_program(program: str, args=(), env=(), **kwargs) -> ExecutionResult:
    """Run a program with an explicit argument vector, optionally with a replacement environment."""
    return execute(program, args, env, shell=False, **kwargs)
