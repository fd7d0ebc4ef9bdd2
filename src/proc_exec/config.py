"""Engine settings — defaults, optional YAML file, environment overrides."""

import os
from dataclasses import dataclass, fields, replace

import yaml

from proc_exec.errors import ConfigError

CONFIG_FILE = "proc-exec.yml"
BACKENDS = ("auto", "posix", "windows")

ENV_OVERRIDES = {
    "PROC_EXEC_BACKEND": "backend",
    "PROC_EXEC_SHELL": "shell",
    "PROC_EXEC_READ_SIZE": "read_size",
    "PROC_EXEC_PIPE_BUFFER_SIZE": "pipe_buffer_size",
    "PROC_EXEC_STRIP_CR": "strip_carriage_returns",
    "PROC_EXEC_ENCODING": "encoding",
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class EngineConfig:
    backend: str = "auto"
    shell: str = "/bin/sh"
    comspec: str = "cmd"
    read_size: int = 65536
    pipe_buffer_size: int = 65536
    strip_carriage_returns: bool | None = None
    encoding: str = "utf-8"
    errors: str = "replace"

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ConfigError(f"Unknown backend {self.backend!r} (expected one of {', '.join(BACKENDS)})")
        if self.read_size <= 0:
            raise ConfigError(f"read_size must be positive, got {self.read_size}")
        if self.pipe_buffer_size <= 0:
            raise ConfigError(f"pipe_buffer_size must be positive, got {self.pipe_buffer_size}")


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def _coerce(name: str, value):
    """Convert a raw file/env value to the field's type."""
    if name in ("read_size", "pipe_buffer_size"):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if name == "strip_carriage_returns":
        return None if value is None else _to_bool(value)
    return str(value)


def _config_path(path: str | None) -> str | None:
    """Explicit path → PROC_EXEC_CONFIG → ./proc-exec.yml (if present)."""
    if path:
        return path
    env_path = os.environ.get("PROC_EXEC_CONFIG")
    if env_path:
        return env_path
    if os.path.isfile(CONFIG_FILE):
        return CONFIG_FILE
    return None


def _read_file(path: str) -> dict:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e.strerror}", errno=e.errno) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping")
    return data


def load(path: str | None = None, **overrides) -> EngineConfig:
    """Build an EngineConfig from file, environment, then keyword overrides.

    Keyword overrides set to None are ignored, so CLI options can be passed
    straight through.
    """
    known = {f.name for f in fields(EngineConfig)}
    values = {}

    config_path = _config_path(path)
    if config_path:
        for key, value in _read_file(config_path).items():
            name = str(key).replace("-", "_")
            if name not in known:
                raise ConfigError(f"Unknown config key {key!r} in {config_path}")
            values[name] = _coerce(name, value)

    for env_name, name in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is not None and raw != "":
            values[name] = _coerce(name, raw)

    for name, value in overrides.items():
        if name not in known:
            raise ConfigError(f"Unknown config option {name!r}")
        if value is not None:
            values[name] = _coerce(name, value)

    return replace(EngineConfig(), **values)
