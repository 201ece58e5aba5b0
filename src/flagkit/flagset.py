"""Typed flag storage and its translation to click options.

A :class:`FlagSet` is the registration target handed to every value-type
constructor in :mod:`flagkit.types`. It validates names and shorthands,
refuses duplicates, keeps the registered :class:`~flagkit.models.Flag`
handles in declaration order, and converts them into ``click.Option``
objects when a :class:`~flagkit.command.Command` builds its click command.

**Conversion rules:**

* ``string`` -> ``click.STRING``; ``int`` -> ``click.INT``;
  ``float`` -> ``click.FLOAT``.
* ``bool`` -> an ``is_flag`` option (``--verbose`` sets ``True``).
* ``duration`` -> :class:`DurationParamType`, accepting Go-style strings
  such as ``90s``, ``5m`` or ``1h30m`` and producing a
  :class:`~datetime.timedelta`.
* ``string_list`` -> ``multiple=True``; each occurrence may also carry a
  comma-separated list (``--tag a,b --tag c``).
* Path hints become a ``shell_complete`` hook (see :func:`path_completer`).
"""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

import click
from click.shell_completion import CompletionItem

from flagkit.exceptions import DuplicateFlagError, InvalidFlagError
from flagkit.models import Flag, FlagKind, PathKind


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")

_DURATION_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration string into a :class:`~datetime.timedelta`.

    Accepts a sequence of ``<number><unit>`` parts where the unit is one of
    ``h``, ``m``, ``s`` or ``ms`` (``"1h30m"``, ``"2.5s"``, ``"250ms"``).
    A bare number is taken as seconds.

    Raises:
        ValueError: If *text* is not a valid duration.
    """
    value = text.strip()
    if not value:
        raise ValueError("empty duration")
    try:
        return timedelta(seconds=float(value))
    except ValueError:
        pass

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART_RE.finditer(value):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(value):
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(seconds=seconds)


class DurationParamType(click.ParamType):
    """click parameter type for :func:`parse_duration` values."""

    name = "duration"

    def convert(self, value: Any, param: Optional[click.Parameter], ctx: Optional[click.Context]) -> timedelta:
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(str(value))
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


DURATION = DurationParamType()

_CLICK_TYPES: dict[FlagKind, click.ParamType] = {
    FlagKind.STRING: click.STRING,
    FlagKind.INT: click.INT,
    FlagKind.FLOAT: click.FLOAT,
    FlagKind.DURATION: DURATION,
    FlagKind.STRING_LIST: click.STRING,
}


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


def path_completer(
    path_kind: PathKind,
    extensions: tuple[str, ...] = (),
) -> Optional[Callable[[click.Context, click.Parameter, str], list[CompletionItem]]]:
    """Build a click ``shell_complete`` hook for a flag's path hint.

    * ``DIRECTORY`` delegates to the shell's directory completion.
    * ``FILE`` with no extensions delegates to the shell's file completion.
    * ``FILE`` with extensions lists matching files (and directories, so the
      user can descend) next to the partially typed path.

    Returns ``None`` for ``PathKind.NONE``.
    """
    if path_kind == PathKind.NONE:
        return None

    if path_kind == PathKind.DIRECTORY:

        def _complete_dir(ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
            return [CompletionItem(incomplete, type="dir")]

        return _complete_dir

    if not extensions:

        def _complete_any(ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
            return [CompletionItem(incomplete, type="file")]

        return _complete_any

    suffixes = tuple(f".{ext}" for ext in extensions)

    def _complete_ext(ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
        head, sep, prefix = incomplete.rpartition("/")
        directory = Path(head + sep) if sep else Path(".")
        if not directory.is_dir():
            return []
        items: list[CompletionItem] = []
        for entry in sorted(directory.iterdir(), key=lambda p: p.name):
            if not entry.name.startswith(prefix):
                continue
            shown = f"{head}{sep}{entry.name}"
            if entry.is_dir():
                items.append(CompletionItem(f"{shown}/", type="plain"))
            elif entry.name.endswith(suffixes):
                items.append(CompletionItem(shown, type="plain"))
        return items

    return _complete_ext


# ---------------------------------------------------------------------------
# FlagSet
# ---------------------------------------------------------------------------


def to_identifier(name: str) -> str:
    """Return the Python identifier click uses as the destination for *name*."""
    return re.sub(r"[^0-9a-zA-Z_]", "_", name)


def click_names(flag: Flag) -> list[str]:
    """Every name click will claim for *flag*: its destination and long options.

    Boolean flags also claim the negated ``--no-<name>`` option. Two flags
    whose click names overlap cannot share a command.
    """
    names = [to_identifier(flag.name), f"--{flag.name}"]
    if flag.kind == FlagKind.BOOL:
        names.append(f"--no-{flag.name}")
    return names


class FlagSet:
    """An ordered collection of flags belonging to one command scope.

    Args:
        name: Label used in error messages (``"serve (persistent)"``).
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._flags: dict[str, Flag] = {}
        self._shorthands: dict[str, str] = {}
        self._click_names: dict[str, str] = {}

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #

    def add_flag(self, flag: Flag) -> Flag:
        """Validate and store *flag*, returning it.

        Raises:
            InvalidFlagError: If the name is empty or starts with ``-``, or
                the shorthand is not exactly one character.
            DuplicateFlagError: If the name or shorthand is already taken, or the
                flag would share a click destination or option with another
                flag (``dry-run`` and ``dry_run``).
        """
        if not flag.name or flag.name.startswith("-"):
            raise InvalidFlagError(f"Invalid flag name {flag.name!r} in flag set {self.name!r}")
        if flag.shorthand is not None and (len(flag.shorthand) != 1 or flag.shorthand == "-"):
            raise InvalidFlagError(
                f"Flag '{flag.name}': shorthand must be exactly one character, got {flag.shorthand!r}"
            )
        if flag.name in self._flags:
            raise DuplicateFlagError(f"Flag '{flag.name}' is already registered in flag set {self.name!r}")
        if flag.shorthand is not None and flag.shorthand in self._shorthands:
            other = self._shorthands[flag.shorthand]
            raise DuplicateFlagError(
                f"Shorthand '-{flag.shorthand}' for flag '{flag.name}' is already used by '{other}'"
            )
        for click_name in click_names(flag):
            if click_name in self._click_names:
                other = self._click_names[click_name]
                raise DuplicateFlagError(
                    f"Flag '{flag.name}' collides with '{other}' on {click_name!r} in flag set {self.name!r}"
                )

        self._flags[flag.name] = flag
        if flag.shorthand is not None:
            self._shorthands[flag.shorthand] = flag.name
        for click_name in click_names(flag):
            self._click_names[click_name] = flag.name
        return flag

    def _register(
        self,
        kind: FlagKind,
        name: str,
        default: Any,  # noqa: ANN401
        help: str,
        shorthand: Optional[str],
    ) -> Flag:
        return self.add_flag(
            Flag(name=name, kind=kind, default=default, help=help, shorthand=shorthand)
        )

    def register_string(self, name: str, default: str, help: str = "", shorthand: Optional[str] = None) -> Flag:
        """Register a string-valued flag."""
        return self._register(FlagKind.STRING, name, default, help, shorthand)

    def register_bool(self, name: str, default: bool, help: str = "", shorthand: Optional[str] = None) -> Flag:
        """Register a boolean switch."""
        return self._register(FlagKind.BOOL, name, default, help, shorthand)

    def register_int(self, name: str, default: int, help: str = "", shorthand: Optional[str] = None) -> Flag:
        """Register an integer-valued flag."""
        return self._register(FlagKind.INT, name, default, help, shorthand)

    def register_float(self, name: str, default: float, help: str = "", shorthand: Optional[str] = None) -> Flag:
        """Register a float-valued flag."""
        return self._register(FlagKind.FLOAT, name, default, help, shorthand)

    def register_duration(
        self, name: str, default: timedelta, help: str = "", shorthand: Optional[str] = None
    ) -> Flag:
        """Register a duration flag (see :func:`parse_duration`)."""
        return self._register(FlagKind.DURATION, name, default, help, shorthand)

    def register_string_list(
        self, name: str, default: list[str], help: str = "", shorthand: Optional[str] = None
    ) -> Flag:
        """Register a repeatable string flag."""
        return self._register(FlagKind.STRING_LIST, name, list(default), help, shorthand)

    # ------------------------------------------------------------------ #
    # Access
    # ------------------------------------------------------------------ #

    def lookup(self, name: str) -> Optional[Flag]:
        """Return the flag registered under *name*, or ``None``."""
        return self._flags.get(name)

    def names(self) -> list[str]:
        return list(self._flags)

    def __iter__(self) -> Iterator[Flag]:
        return iter(list(self._flags.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._flags

    def __len__(self) -> int:
        return len(self._flags)

    def __repr__(self) -> str:
        return f"FlagSet({self.name!r}, {self.names()!r})"

    # ------------------------------------------------------------------ #
    # click conversion
    # ------------------------------------------------------------------ #

    def to_click_params(self) -> list[click.Option]:
        """Convert every registered flag into a ``click.Option``."""
        return [to_click_option(flag) for flag in self]


def to_click_option(flag: Flag) -> click.Option:
    """Build the ``click.Option`` for a single :class:`~flagkit.models.Flag`.

    The option's destination name is :func:`to_identifier` of the flag name;
    required-ness is not delegated to click (see
    :meth:`flagkit.command.Command.check_required_flags`).
    Boolean flags get a ``--no-<name>`` form so a ``True`` default can be
    switched off.
    """
    decls = [f"--{flag.name}"]
    if flag.shorthand:
        decls.append(f"-{flag.shorthand}")
    decls.append(to_identifier(flag.name))

    kwargs: dict[str, Any] = {
        "help": flag.help or None,
        "shell_complete": path_completer(flag.path_kind, flag.extensions),
    }

    if flag.kind == FlagKind.BOOL:
        decls[0] = f"--{flag.name}/--no-{flag.name}"
        return click.Option(decls, is_flag=True, default=bool(flag.default), **kwargs)

    if flag.kind == FlagKind.STRING_LIST:
        return click.Option(
            decls,
            type=click.STRING,
            multiple=True,
            default=tuple(flag.default or ()),
            show_default=bool(flag.default),
            **kwargs,
        )

    default = flag.default
    show_default: Any = default not in (None, "")
    if flag.kind == FlagKind.DURATION and isinstance(default, timedelta):
        show_default = format_duration(default)
    return click.Option(
        decls,
        type=_CLICK_TYPES[flag.kind],
        default=default,
        show_default=show_default,
        **kwargs,
    )


def format_duration(value: timedelta) -> str:
    """Render a :class:`~datetime.timedelta` in the form :func:`parse_duration` reads."""
    total_ms = int(round(value.total_seconds() * 1000))
    if total_ms == 0:
        return "0s"
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    seconds, millis = divmod(rem, 1000)
    out = ""
    if hours:
        out += f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if seconds:
        out += f"{seconds}s"
    if millis:
        out += f"{millis}ms"
    return out


def split_list_values(values: Any) -> list[str]:  # noqa: ANN401
    """Flatten repeated and comma-separated string-list occurrences."""
    result: list[str] = []
    for item in values or ():
        result.extend(part for part in str(item).split(",") if part)
    return result
