"""Value-type constructors.

A value type is the second argument to :func:`~flagkit.builder.flag`. Each
function below takes the flag's default value and returns a
:data:`FlagType`: a closure that, during apply, registers one typed flag on
the selected :class:`~flagkit.flagset.FlagSet` under exactly the
descriptor's name, with its abbreviation as shorthand and its description as
help text.

Registration errors (duplicate name, bad shorthand) come straight from the
flag set and are not caught here. Supporting a new type means writing one
more constructor in the same shape; descriptors and combinators stay as
they are.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Callable, Iterable, Optional, Union

from flagkit.flagset import FlagSet, parse_duration
from flagkit.models import FlagDescriptor

FlagType = Callable[[FlagDescriptor, FlagSet], None]


def string(default: str = "") -> FlagType:
    """A string flag, e.g. ``flag("config", string("default.yaml"))``."""

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_string(fd.name, default, fd.description, shorthand=fd.abbreviation)

    return _register


def boolean(default: bool = False) -> FlagType:
    """A boolean switch."""

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_bool(fd.name, default, fd.description, shorthand=fd.abbreviation)

    return _register


def integer(default: int = 0) -> FlagType:
    """An integer flag."""

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_int(fd.name, default, fd.description, shorthand=fd.abbreviation)

    return _register


def floating(default: float = 0.0) -> FlagType:
    """A float flag."""

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_float(fd.name, default, fd.description, shorthand=fd.abbreviation)

    return _register


def duration(default: Optional[Union[timedelta, str]] = None) -> FlagType:
    """A duration flag.

    *default* may be a :class:`~datetime.timedelta` or a string in the form
    accepted by :func:`~flagkit.flagset.parse_duration` (``"30s"``,
    ``"1h30m"``). ``None`` means zero.
    """
    if default is None:
        value = timedelta(0)
    elif isinstance(default, str):
        value = parse_duration(default)
    else:
        value = default

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_duration(fd.name, value, fd.description, shorthand=fd.abbreviation)

    return _register


def string_list(default: Iterable[str] = ()) -> FlagType:
    """A repeatable string flag (``--tag a --tag b`` or ``--tag a,b``)."""
    values = list(default)

    def _register(fd: FlagDescriptor, fs: FlagSet) -> None:
        fs.register_string_list(fd.name, values, fd.description, shorthand=fd.abbreviation)

    return _register
