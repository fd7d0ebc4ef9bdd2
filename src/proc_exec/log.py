"""Timestamped stderr output + GitHub Actions formatting.

stdout is reserved for result records, so everything here goes to stderr.
"""

import os
import sys
from datetime import datetime

_verbose = False


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _is_github_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose or os.environ.get("PROC_EXEC_DEBUG") in ("1", "true")


def info(msg: str) -> None:
    print(f"[{_timestamp()}] {msg}", file=sys.stderr, flush=True)


def debug(msg: str) -> None:
    if is_verbose():
        info(f"  {msg}")


def error(msg: str) -> None:
    if _is_github_actions():
        print(f"::error::{msg}", file=sys.stderr, flush=True)
    print(f"[{_timestamp()}] ERROR: {msg}", file=sys.stderr, flush=True)
