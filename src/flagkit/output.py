"""Where flagkit writes: data to stdout, diagnostics to stderr.

Two kinds of output leave flagkit:

* **Data** -- the flag and binding tables printed by the ``flagkit`` CLI.
  Always stdout, rendered as a Rich table, tab-separated text or a JSON
  array of records depending on :class:`OutputFormat`.
* **Diagnostics** -- ``info``/``success``/``warning``/``error`` messages and
  the ``debug`` trace that :func:`~flagkit.builder.apply` and
  :class:`~flagkit.registry.Registry` emit for every bind step. Always
  stderr, so piping a table never picks them up.

Colour follows `clig.dev <https://clig.dev/>`_: ``NO_COLOR`` (any value),
``TERM=dumb`` or ``--no-color`` turn Rich markup off and diagnostics fall
back to a plain ``Error:`` / ``Warning:`` / ``[debug]`` prefix.

Host programs normally never touch :class:`OutputManager` directly; the
module-level helpers (:func:`debug`, :func:`error`, ...) go through the
process-wide instance from :func:`get_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormat(str, Enum):
    """How tables are rendered on stdout.

    ``AUTO`` becomes ``RICH`` on an interactive, colour-capable terminal and
    ``PLAIN`` everywhere else.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


# (plain prefix, rich markup template, suppressed by --quiet)
_LEVELS: dict[str, tuple[str, str, bool]] = {
    "info": ("", "{}", True),
    "success": ("", "[green]{}[/green]", True),
    "warning": ("Warning: ", "[yellow]Warning:[/yellow] {}", False),
    "error": ("Error: ", "[bold red]Error:[/bold red] {}", False),
    "debug": ("[debug] ", "[dim]\\[debug] {}[/dim]", False),
}


class OutputManager:
    """Holds output preferences and the two Rich consoles.

    Args:
        format: Table format. ``AUTO`` is resolved once, here.
        no_color: Force colour off even on a terminal.
        quiet: Drop ``info`` and ``success`` messages.
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = _resolve_format(format, self._no_color)

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:  # noqa: ANN401
        """Print *data* as indented JSON. Values JSON cannot encode (timedeltas) go through ``str``."""
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print *rows* under *headers* in the active format.

        JSON mode emits one object per row keyed by header; plain mode emits
        a tab-separated header line followed by one line per row. *title* is
        only shown by Rich tables.
        """
        if self._format == OutputFormat.JSON:
            self.print_json([dict(zip(headers, row)) for row in rows])
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(*headers, title=title, header_style="bold cyan")
        for row in rows:
            table.add_row(*(escape(cell) for cell in row))
        self._stdout.print(table)

    # --- stderr ---

    def _emit(self, level: str, message: str) -> None:
        prefix, markup, suppressible = _LEVELS[level]
        if suppressible and self._quiet:
            return
        if self._no_color:
            print(f"{prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(escape(message)))

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit("warning", message)

    def error(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit("error", message)

    def debug(self, message: str) -> None:
        """Shown only with ``--verbose``."""
        if self._verbose:
            self._emit("debug", message)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set to anything or ``TERM`` is ``dumb``."""
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


# --- process-wide instance ---

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager so the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
