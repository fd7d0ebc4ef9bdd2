"""Turn a logical command into the launch form a backend consumes."""

import enum
from dataclasses import dataclass

PATH_SEPARATORS = ("/", "\\")


class Mode(enum.Enum):
    SHELL = "shell"
    PROGRAM = "program"


@dataclass(frozen=True)
class CommandSpec:
    mode: Mode
    program: str
    args: tuple[str, ...] = ()
    env: tuple[str, ...] = ()

    @classmethod
    def for_shell(cls, command: str, args=()) -> "CommandSpec":
        return cls(Mode.SHELL, command, tuple(args))

    @classmethod
    def for_program(cls, program: str, args=(), env=()) -> "CommandSpec":
        return cls(Mode.PROGRAM, program, tuple(args), tuple(env))


@dataclass(frozen=True)
class LaunchPlan:
    """Exactly one of shell_line / argv is set.

    env is None when the child inherits the caller's environment, otherwise
    it is the complete replacement environment as KEY=VALUE entries.
    """

    shell_line: str | None = None
    argv: tuple[str, ...] | None = None
    env: tuple[str, ...] | None = None

    @property
    def is_shell(self) -> bool:
        return self.shell_line is not None

    @property
    def program(self) -> str:
        return self.argv[0] if self.argv else self.shell_line

    def environ(self) -> dict[str, str] | None:
        if self.env is None:
            return None
        return parse_env(self.env)


def parse_env(entries) -> dict[str, str]:
    """Convert ["KEY=VALUE", ...] to a dict. A bare KEY maps to ""."""
    parsed = {}
    for item in entries:
        k, _, v = item.partition("=")
        parsed[k] = v
    return parsed


def quote_argument(arg: str) -> str:
    """Wrap arg in double quotes when it looks like a path.

    Only arguments containing / or \\ are quoted. Quotes and shell
    metacharacters inside arguments are passed through unescaped.
    """
    if any(sep in arg for sep in PATH_SEPARATORS):
        return f'"{arg}"'
    return arg


def shell_line(command: str, args=()) -> str:
    parts = [f'"{command}"']
    parts.extend(quote_argument(a) for a in args)
    return " ".join(parts)


def build(spec: CommandSpec) -> LaunchPlan:
    if spec.mode is Mode.SHELL:
        return LaunchPlan(shell_line=shell_line(spec.program, spec.args))
    env = tuple(spec.env) if spec.env else None
    return LaunchPlan(argv=(spec.program, *spec.args), env=env)
