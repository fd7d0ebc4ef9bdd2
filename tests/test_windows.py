"""Tests for windows.py — command lines, spawn wiring, CR stripping (Popen mocked)."""

from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeStream
from proc_exec import windows
from proc_exec.command import CommandSpec, LaunchPlan, build
from proc_exec.config import EngineConfig
from proc_exec.errors import SpawnFailure, WaitFailure
from proc_exec.result import TerminationStatus
from proc_exec.windows import WindowsBackend, command_line


@pytest.fixture(autouse=True)
def no_startupinfo(monkeypatch):
    monkeypatch.setattr(windows, "_startupinfo", lambda: None)


def _fake_proc(stdout=(), stderr=(), returncode=0):
    proc = MagicMock()
    proc.pid = 99
    proc.stdout = FakeStream(stdout)
    proc.stderr = FakeStream(stderr)
    proc.wait.return_value = returncode
    return proc


def test_command_line_shell_wraps_in_cmd():
    plan = build(CommandSpec.for_shell("C:\\Program Files\\app.exe", ["C:\\in put.txt", "-v"]))
    assert command_line(plan) == 'cmd /C ""C:\\Program Files\\app.exe" "C:\\in put.txt" -v"'


def test_command_line_custom_comspec():
    assert command_line(LaunchPlan(shell_line='"dir"'), comspec="cmd.exe") == 'cmd.exe /C ""dir""'


def test_command_line_program_mode():
    plan = LaunchPlan(argv=("C:\\tools\\my tool.exe", "a b", "c"))
    assert command_line(plan) == '"C:\\tools\\my tool.exe" "a b" c'


def test_spawn_wires_pipes_and_closes_stdin():
    proc = _fake_proc()
    with patch("subprocess.Popen", return_value=proc) as popen:
        handle = WindowsBackend().spawn(LaunchPlan(argv=("prog.exe",), env=("A=1",)))
    kwargs = popen.call_args.kwargs
    assert popen.call_args.args[0] == "prog.exe"
    assert kwargs["env"] == {"A": "1"}
    assert kwargs["creationflags"] == windows.CREATE_NEW_CONSOLE
    assert kwargs["bufsize"] == 0
    proc.stdin.close.assert_called_once()
    assert handle.pid == 99
    assert handle.process is proc


def test_spawn_failure():
    err = OSError(2, "The system cannot find the file specified")
    with patch("subprocess.Popen", side_effect=err):
        with pytest.raises(SpawnFailure, match="cannot find the file"):
            WindowsBackend().spawn(LaunchPlan(argv=("missing.exe",)))


def test_drain_strips_carriage_returns():
    proc = _fake_proc([b"line1\r\nline2\r\n"], [b"oops\r\n"])
    with patch("subprocess.Popen", return_value=proc):
        backend = WindowsBackend()
        handle = backend.spawn(LaunchPlan(shell_line='"echo" x'))
    assert backend.drain(handle) == (b"line1\nline2\n", b"oops\n")


def test_drain_keeps_carriage_returns_when_configured():
    proc = _fake_proc([b"a\r\n"])
    with patch("subprocess.Popen", return_value=proc):
        backend = WindowsBackend(EngineConfig(strip_carriage_returns=False))
        handle = backend.spawn(LaunchPlan(shell_line='"echo" a'))
    assert backend.drain(handle)[0] == b"a\r\n"


def test_wait_reports_exit_code():
    proc = _fake_proc(returncode=3)
    with patch("subprocess.Popen", return_value=proc):
        backend = WindowsBackend()
        handle = backend.spawn(LaunchPlan(argv=("prog.exe",)))
    status = backend.wait(handle)
    assert status == TerminationStatus.exited(3)
    assert backend.encode(status) == 3
    assert backend.wait(handle) is status
    proc.wait.assert_called_once()


def test_wait_failure():
    proc = _fake_proc()
    proc.wait.side_effect = OSError(6, "The handle is invalid")
    with patch("subprocess.Popen", return_value=proc):
        backend = WindowsBackend()
        handle = backend.spawn(LaunchPlan(argv=("prog.exe",)))
    with pytest.raises(WaitFailure, match="Couldn't get exit code"):
        backend.wait(handle)


def test_release_closes_both_pipes():
    proc = _fake_proc()
    with patch("subprocess.Popen", return_value=proc):
        handle = WindowsBackend().spawn(LaunchPlan(argv=("prog.exe",)))
    handle.release()
    handle.release()
    assert proc.stdout.close_calls == 1
    assert proc.stderr.close_calls == 1


def test_spawn_value_error_is_spawn_failure():
    with patch("subprocess.Popen", side_effect=ValueError("embedded null character")):
        with pytest.raises(SpawnFailure, match="embedded null character") as exc:
            WindowsBackend().spawn(LaunchPlan(argv=("prog.exe", "a\0b")))
    assert exc.value.errno is None
