"""The ``flagkit`` developer CLI.

Loads a program's declarations and shows what they bind:

* ``flagkit inspect TARGET`` -- a table of every flag on every command in
  the tree (shorthand, type, default, scope, required, registry key,
  completion hint).
* ``flagkit env TARGET`` -- each registry key, the environment variable it
  reads, the flag it is bound to and the value it resolves to right now.

``TARGET`` is ``module:attribute``. The attribute may be a
:class:`~flagkit.command.Command` (already applied), a zero-argument
callable returning one, or an iterable of applicants, which are applied to a
fresh command named after the attribute.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import importlib
import signal
import sys
import traceback
from datetime import datetime, timedelta
from typing import Any, Optional

import typer

from flagkit import __version__
from flagkit.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="flagkit",
    help="Inspect declarative flag definitions.",
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"flagkit {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback: install the global output manager from CLI flags."""
    from flagkit.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


# ------------------------------------------------------------------ #
# Target loading
# ------------------------------------------------------------------ #


def load_target(target: str):  # noqa: ANN202
    """Resolve ``module:attribute`` into a :class:`~flagkit.command.Command`.

    Raises:
        typer.BadParameter: If *target* is malformed, cannot be imported, or
            does not name a command, factory, or applicant list.
    """
    from flagkit.builder import Applicant, apply_all
    from flagkit.command import Command
    from flagkit.output import debug

    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:attribute', got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise typer.BadParameter(f"Cannot import {module_name!r}: {exc}") from exc

    obj: Any = module
    for part in attr.split("."):
        if not hasattr(obj, part):
            raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}")
        obj = getattr(obj, part)

    if isinstance(obj, Command):
        return obj
    if callable(obj) and not isinstance(obj, Applicant):
        obj = obj()
        if isinstance(obj, Command):
            return obj
    if isinstance(obj, Applicant):
        obj = [obj]
    if isinstance(obj, (list, tuple)) and all(isinstance(a, Applicant) for a in obj):
        command = Command(attr.rsplit(".", 1)[-1])
        debug(f"Applying {len(obj)} applicant(s) to a fresh command {command.name!r}")
        apply_all(command, obj)
        return command

    raise typer.BadParameter(
        f"{target!r} is not a Command, a Command factory, or a list of applicants"
    )


def _load_or_exit(target: str):  # noqa: ANN202
    """Call :func:`load_target`, turning flagkit errors into a clean exit.

    Raises:
        typer.Exit: With the error's exit code when applying the
            declarations fails.
    """
    from flagkit.exceptions import FlagkitError
    from flagkit.output import error

    try:
        return load_target(target)
    except FlagkitError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _format_default(value: Any) -> str:  # noqa: ANN401
    from flagkit.flagset import format_duration

    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    if value is None or value == "":
        return "-"
    return str(value)


def _format_completion(flag: Any) -> str:  # noqa: ANN401
    from flagkit.models import PathKind

    if flag.path_kind == PathKind.DIRECTORY:
        return "dir"
    if flag.path_kind == PathKind.FILE:
        return "file" + (f" ({', '.join(flag.extensions)})" if flag.extensions else "")
    return ""


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("inspect")
def inspect_command(
    target: str = typer.Argument(..., help="module:attribute naming a command or applicants."),
) -> None:
    """List every flag declared on the target command tree.

    Example::

        flagkit inspect mytool.cli:root
        flagkit --json inspect mytool.cli:FLAGS
    """
    from flagkit.output import get_output
    from flagkit.registry import get_registry

    command = _load_or_exit(target)
    registry = get_registry()
    keys_by_flag = {id(registry.bound_flag(k)): k for k in registry.bound_keys()}

    headers = ["Command", "Flag", "Short", "Type", "Default", "Scope", "Required", "Env key", "Completion"]
    rows: list[list[str]] = []
    for node in command.walk():
        for scope, flag_set in (("local", node.local_flags()), ("persistent", node.persistent_flags())):
            for f in flag_set:
                rows.append([
                    node.command_path(),
                    f"--{f.name}",
                    f"-{f.shorthand}" if f.shorthand else "",
                    f.kind.value,
                    _format_default(f.default),
                    scope,
                    "yes" if f.required else "",
                    keys_by_flag.get(id(f), ""),
                    _format_completion(f),
                ])

    get_output().print_table(headers, rows, title=f"{command.name} -- Flags ({len(rows)})")


@app.command("env")
def env_command(
    target: str = typer.Argument(..., help="module:attribute naming a command or applicants."),
    env_prefix: Optional[str] = typer.Option(
        None, "--env-prefix", "-e", help="Prefix for environment variable names."
    ),
) -> None:
    """Show registry keys, their environment variables and resolved values.

    Example::

        flagkit env mytool.cli:FLAGS --env-prefix MYTOOL
    """
    from flagkit.output import get_output, info
    from flagkit.registry import get_registry

    registry = get_registry()
    if env_prefix is not None:
        registry.env_prefix = env_prefix
    _load_or_exit(target)

    keys = registry.bound_keys()
    if not keys:
        info("No registry keys are bound.")
        return

    headers = ["Key", "Env var", "Flag", "Value"]
    rows: list[list[str]] = []
    for key in keys:
        bound = registry.bound_flag(key)
        rows.append([
            key,
            registry.env_var(key),
            f"--{bound.name}" if bound is not None else "",
            _format_default(registry.get(key)),
        ])
    get_output().print_table(headers, rows, title="Registry bindings")


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from flagkit.config import get_data_dir

    logs_dir = get_data_dir("flagkit") / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``flagkit`` console script.

    :class:`~flagkit.exceptions.FlagkitError` instances cause a clean exit
    with the error's ``exit_code``. All other exceptions produce a crash
    log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from flagkit.exceptions import FlagkitError
        from flagkit.output import error

        if isinstance(exc, FlagkitError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
