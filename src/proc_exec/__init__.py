"""Child-process execution with captured output and normalized exit codes."""

try:
    from importlib.metadata import version

    __version__ = version("proc-exec")
except Exception:
    __version__ = "0.0.0"
