"""Click entry point — both invocation modes."""

import json
import sys

import click

from proc_exec import __version__, config, engine, log
from proc_exec.errors import ExecError

# Everything after the program name belongs to the child.
PASSTHROUGH = {"ignore_unknown_options": True, "allow_interspersed_args": False}


@click.group()
@click.version_option(version=__version__, prog_name="proc-exec")
@click.option("--config", "config_path", default=None, help="YAML config file (default: ./proc-exec.yml)")
@click.option("--backend", type=click.Choice(config.BACKENDS), default=None, help="Process backend")
@click.option("--strip-cr/--keep-cr", default=None, help="Strip carriage returns from captured output")
@click.option("--verbose", "-v", is_flag=True, help="Log spawn and exit details to stderr")
@click.pass_context
def main(ctx, config_path, backend, strip_cr, verbose):
    """Run a child process and print its stdout, stderr and exit code as JSON."""
    log.set_verbose(verbose)
    try:
        ctx.obj = config.load(config_path, backend=backend, strip_carriage_returns=strip_cr)
    except ExecError as e:
        log.error(str(e))
        sys.exit(1)


def _run(ctx, propagate, fn, *args):
    try:
        result = fn(*args, config=ctx.obj)
    except ExecError as e:
        log.error(str(e))
        sys.exit(1)
    click.echo(json.dumps(result.as_record()))
    sys.exit(result.exit_code if propagate else 0)


@main.command(name="exec-command", context_settings=PASSTHROUGH)
@click.option("--propagate", is_flag=True, help="Exit with the child's exit code")
@click.argument("command")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_command(ctx, propagate, command, args):
    """Run COMMAND (and ARGS) through the system shell."""
    _run(ctx, propagate, engine.exec_command, command, list(args))


@main.command(name="exec", context_settings=PASSTHROUGH)
@click.option("--env", "-e", multiple=True, metavar="KEY=VALUE", help="Replacement environment entry")
@click.option("--propagate", is_flag=True, help="Exit with the child's exit code")
@click.argument("program")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def exec_cmd(ctx, env, propagate, program, args):
    """Run PROGRAM with ARGS directly, without a shell.

    Any --env entries replace the inherited environment entirely.
    """
    _run(ctx, propagate, engine.exec_program, program, list(args), list(env))


if __name__ == "__main__":
    main()
