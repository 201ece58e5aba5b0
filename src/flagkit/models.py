"""Canonical Pydantic models shared across all flagkit modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Declaration models** -- built by :func:`~flagkit.builder.flag` and the
option combinators in :mod:`flagkit.options`:
    :class:`FlagScope`, :class:`PathKind`, and :class:`FlagDescriptor`.

**Flag-set models** -- produced by :class:`~flagkit.flagset.FlagSet` when a
value-type constructor registers a flag:
    :class:`FlagKind` and :class:`Flag`.

**Configuration models** -- settings for the key/value registry:
    :class:`RegistryConfig`.

All models use Pydantic v2. Declarations are plain mutable models so that
combinators can assign attributes directly; equality is field-wise, which
makes two descriptors built from the same combinators compare equal
regardless of combinator order.
"""

from __future__ import annotations

import enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field


# --- Declarations ---


class FlagScope(str, enum.Enum):
    """Visibility of a flag within a command tree.

    ``LOCAL`` flags are visible only on the owning command. ``PERSISTENT``
    flags are also accepted by every descendant command.
    """

    LOCAL = "local"
    PERSISTENT = "persistent"


class PathKind(str, enum.Enum):
    """Filesystem-completion hint attached to a flag.

    The hint drives shell completion only; flagkit never checks that the
    supplied value exists on disk.
    """

    NONE = "none"
    DIRECTORY = "directory"
    FILE = "file"


class FlagDescriptor(BaseModel):
    """The full declaration of one flag prior to binding.

    Created by :func:`~flagkit.builder.flag` with the defaults below, then
    mutated in order by each option combinator. Once the wrapping
    :class:`~flagkit.builder.Applicant` runs, the descriptor is not touched
    again.

    ``path_kind`` and ``extensions`` together form a single path hint:
    :func:`~flagkit.options.dirname` and :func:`~flagkit.options.filename`
    both overwrite the pair, so the last one applied wins.

    Example::

        FlagDescriptor(
            name="config",
            value_type=string("default.yaml"),
            scope=FlagScope.PERSISTENT,
            env_key="config",
        )
    """

    name: str
    value_type: Callable[..., None] = Field(
        description="Value-type constructor that registers the typed flag"
    )
    scope: FlagScope = FlagScope.LOCAL
    mandatory: bool = False
    path_kind: PathKind = PathKind.NONE
    extensions: tuple[str, ...] = Field(
        default=(), description="Allowed file extensions when path_kind is FILE"
    )
    abbreviation: Optional[str] = None
    description: str = ""
    env_key: Optional[str] = Field(
        default=None, description="Registry key mirrored from the parsed value"
    )

    @property
    def is_persistent(self) -> bool:
        return self.scope == FlagScope.PERSISTENT


# --- Flag set ---


class FlagKind(str, enum.Enum):
    """Value kinds supported by :class:`~flagkit.flagset.FlagSet`."""

    STRING = "string"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DURATION = "duration"
    STRING_LIST = "string_list"


class Flag(BaseModel):
    """A registered flag handle owned by a :class:`~flagkit.flagset.FlagSet`.

    The handle is shared by reference: the flag set converts it to a
    ``click.Option``, the command writes the parsed value back into
    ``value``/``changed``, and the registry reads it when a bound key is
    resolved.
    """

    name: str
    kind: FlagKind
    default: Any = None
    help: str = ""
    shorthand: Optional[str] = None
    value: Any = None
    changed: bool = Field(
        default=False, description="True once a value was supplied on the command line"
    )
    required: bool = False
    path_kind: PathKind = PathKind.NONE
    extensions: tuple[str, ...] = ()

    def current(self) -> Any:  # noqa: ANN401
        """Return the parsed value if one was supplied, else the default."""
        return self.value if self.changed else self.default

    def set(self, value: Any) -> None:  # noqa: ANN401
        """Record a value supplied on the command line."""
        self.value = value
        self.changed = True

    def reset(self) -> None:
        self.value = None
        self.changed = False


# --- Configuration ---


class RegistryConfig(BaseModel):
    """Settings for a :class:`~flagkit.registry.Registry`.

    Loaded from the ``registry`` section of a flagkit config file, or built
    directly by the host program.
    """

    env_prefix: Optional[str] = Field(
        default=None, description="Prefix for environment lookups, e.g. MYTOOL"
    )
    automatic_env: bool = Field(
        default=True, description="Consult environment variables for bound keys"
    )
    allow_empty_env: bool = Field(
        default=False, description="Treat an empty environment variable as a value instead of unset"
    )
    config_file: Optional[str] = Field(
        default=None, description="JSON or YAML file layered under env and flags"
    )
