"""Option combinators for flag declarations.

Each function here returns a :data:`FlagOption` -- a small closure that
mutates exactly one attribute of a :class:`~flagkit.models.FlagDescriptor`.
Combinators are passed to :func:`~flagkit.builder.flag` after the value type
and are applied in the order given::

    flag("config", string("default.yaml"), persistent(), env(), mandatory())

No combinator reads another combinator's attribute, so the order only
matters when two of them write the same attribute; the last one wins.
"""

from __future__ import annotations

from typing import Callable

from flagkit.models import FlagDescriptor, FlagScope, PathKind

FlagOption = Callable[[FlagDescriptor], None]


def persistent() -> FlagOption:
    """Register the flag on the persistent flag set so subcommands inherit it."""

    def _apply(fd: FlagDescriptor) -> None:
        fd.scope = FlagScope.PERSISTENT

    return _apply


def mandatory() -> FlagOption:
    """Require the flag to be set before the command's callback runs."""

    def _apply(fd: FlagDescriptor) -> None:
        fd.mandatory = True

    return _apply


def description(text: str) -> FlagOption:
    """Set the help string shown for the flag."""

    def _apply(fd: FlagDescriptor) -> None:
        fd.description = text

    return _apply


def abbr(char: str) -> FlagOption:
    """Set the single-character shorthand (``-c`` for ``--config``).

    The value is not checked here. The flag set rejects anything other than
    exactly one character with :class:`~flagkit.exceptions.InvalidFlagError`
    when the declaration is applied.
    """

    def _apply(fd: FlagDescriptor) -> None:
        fd.abbreviation = char

    return _apply


def env() -> FlagOption:
    """Bind the flag to the registry key of the same name.

    Equivalent to ``env_name(<flag name>)``.
    """

    def _apply(fd: FlagDescriptor) -> None:
        fd.env_key = fd.name

    return _apply


def env_name(key: str) -> FlagOption:
    """Bind the flag to an explicit registry key."""

    def _apply(fd: FlagDescriptor) -> None:
        fd.env_key = key

    return _apply


def dirname() -> FlagOption:
    """Complete the flag's value as a directory."""

    def _apply(fd: FlagDescriptor) -> None:
        fd.path_kind = PathKind.DIRECTORY
        fd.extensions = ()

    return _apply


def filename(*extensions: str) -> FlagOption:
    """Complete the flag's value as a file, optionally limited to *extensions*.

    Extensions may be given with or without a leading dot (``"yaml"`` and
    ``".yaml"`` are the same). No extensions means any file.
    """
    exts = tuple(e.lstrip(".") for e in extensions)

    def _apply(fd: FlagDescriptor) -> None:
        fd.path_kind = PathKind.FILE
        fd.extensions = exts

    return _apply
