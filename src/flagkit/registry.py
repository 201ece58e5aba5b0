"""Key/value configuration registry with flag, environment and file layers.

:func:`~flagkit.builder.apply` binds flags that carry an ``env_key`` into a
:class:`Registry`. Program code then reads settings by key instead of by
flag, and the registry resolves each key through its layers.

**Precedence (high to low):**

1. The bound flag's value, if it was supplied on the command line.
2. The environment variable for the key (when ``automatic_env`` is on).
   The variable name is the key upper-cased with ``-`` and ``.`` turned
   into ``_``, prefixed with ``<ENV_PREFIX>_`` when a prefix is set:
   key ``log-level`` with prefix ``mytool`` reads ``MYTOOL_LOG_LEVEL``.
   A variable set to the empty string counts as unset unless
   ``allow_empty_env`` is on.
3. A value loaded from a config file (:meth:`Registry.read_config_file`) or
   set with :meth:`Registry.set_config`. Dotted keys address nested
   mappings (``db.host``).
4. A default set with :meth:`Registry.set_default`.
5. The bound flag's default.

Environment strings are converted to the bound flag's kind (``"true"`` ->
``True`` for a bool flag, ``"30s"`` -> ``timedelta`` for a duration flag);
unbound keys return the raw string.

A process-wide registry is available through :func:`get_registry`, mirroring
how :mod:`flagkit.output` manages its global :class:`OutputManager`.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Optional, Union

from flagkit.config import load_config_file
from flagkit.exceptions import BindingConflictError, ConfigError
from flagkit.flagset import parse_duration, split_list_values
from flagkit.models import Flag, FlagKind, RegistryConfig
from flagkit.output import debug

_ENV_SANITIZE_RE = re.compile(r"[^0-9A-Za-z]")

_TRUE_STRINGS = {"1", "t", "true", "yes", "y", "on"}
_FALSE_STRINGS = {"0", "f", "false", "no", "n", "off", ""}

_MISSING = object()


class Registry:
    """Resolves configuration keys through flags, environment and files.

    Args:
        env_prefix: Optional prefix for environment variable names.
        automatic_env: Whether bound and default keys consult the
            environment at all.
        allow_empty_env: Whether an empty environment variable overrides
            the layers below it.
    """

    def __init__(
        self,
        env_prefix: Optional[str] = None,
        automatic_env: bool = True,
        allow_empty_env: bool = False,
    ) -> None:
        self.env_prefix = env_prefix
        self.automatic_env = automatic_env
        self.allow_empty_env = allow_empty_env
        self._flags: dict[str, Flag] = {}
        self._config: dict[str, Any] = {}
        self._defaults: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: RegistryConfig) -> Registry:
        """Build a registry from :class:`~flagkit.models.RegistryConfig`.

        Raises:
            ConfigError: If ``config.config_file`` is set but cannot be loaded.
        """
        registry = cls(
            env_prefix=config.env_prefix,
            automatic_env=config.automatic_env,
            allow_empty_env=config.allow_empty_env,
        )
        if config.config_file:
            registry.read_config_file(config.config_file)
        return registry

    # ------------------------------------------------------------------ #
    # Binding
    # ------------------------------------------------------------------ #

    def bind_flag(self, key: str, flag: Flag) -> None:
        """Resolve *key* through *flag* from now on.

        Binding the same flag to the same key again is a no-op.

        Raises:
            BindingConflictError: If *key* is already bound to another flag.
        """
        key = _normalize_key(key)
        existing = self._flags.get(key)
        if existing is not None and existing is not flag:
            raise BindingConflictError(
                f"Key '{key}' is already bound to flag '{existing.name}', cannot bind flag '{flag.name}'"
            )
        self._flags[key] = flag
        debug(f"Bound key '{key}' to flag '--{flag.name}' (env {self.env_var(key)})")

    def bound_flag(self, key: str) -> Optional[Flag]:
        return self._flags.get(_normalize_key(key))

    def bound_keys(self) -> list[str]:
        return sorted(self._flags)

    def env_var(self, key: str) -> str:
        """Environment variable name consulted for *key*."""
        name = _ENV_SANITIZE_RE.sub("_", _normalize_key(key)).upper()
        if self.env_prefix:
            return f"{_ENV_SANITIZE_RE.sub('_', self.env_prefix).upper()}_{name}"
        return name

    # ------------------------------------------------------------------ #
    # Layers
    # ------------------------------------------------------------------ #

    def set_default(self, key: str, value: Any) -> None:  # noqa: ANN401
        self._defaults[_normalize_key(key)] = value

    def set_config(self, key: str, value: Any) -> None:  # noqa: ANN401
        """Set a config-layer value, as if it had been read from a file."""
        _nested_set(self._config, _normalize_key(key).split("."), value)

    def merge_config(self, data: dict[str, Any]) -> None:
        """Deep-merge *data* into the config layer."""
        _deep_merge(self._config, _lower_keys(data))

    def read_config_file(self, path: Union[str, Path]) -> None:
        """Load a JSON or YAML file into the config layer.

        Raises:
            ConfigError: If the file is missing, unparsable, or its top level
                is not a mapping.
        """
        data = load_config_file(Path(path))
        self.merge_config(data)
        debug(f"Loaded config file {path}")

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def get(self, key: str, default: Any = None) -> Any:  # noqa: ANN401
        """Resolve *key* through the precedence chain, or return *default*."""
        value = self._resolve(_normalize_key(key))
        return default if value is _MISSING else value

    def is_set(self, key: str) -> bool:
        """True when any layer other than a flag default supplies *key*."""
        key = _normalize_key(key)
        flag = self._flags.get(key)
        if flag is not None and flag.changed:
            return True
        if self._env_value(key) is not None:
            return True
        if _nested_get(self._config, key.split(".")) is not _MISSING:
            return True
        return key in self._defaults

    def keys(self) -> list[str]:
        """Every key known to any layer, sorted."""
        known = set(self._flags) | set(self._defaults) | set(_flatten(self._config))
        return sorted(known)

    def all_settings(self) -> dict[str, Any]:
        """Resolve every known key into a flat ``{key: value}`` mapping."""
        return {key: self.get(key) for key in self.keys()}

    def _env_value(self, key: str) -> Optional[str]:
        if not self.automatic_env:
            return None
        value = os.environ.get(self.env_var(key))
        if value == "" and not self.allow_empty_env:
            return None
        return value

    def _resolve(self, key: str) -> Any:  # noqa: ANN401
        flag = self._flags.get(key)
        if flag is not None and flag.changed:
            return flag.value

        raw = self._env_value(key)
        if raw is not None:
            return _coerce(raw, flag) if flag is not None else raw

        value = _nested_get(self._config, key.split("."))
        if value is not _MISSING:
            return value

        if key in self._defaults:
            return self._defaults[key]

        if flag is not None:
            return flag.default
        return _MISSING


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _normalize_key(key: str) -> str:
    return key.lower()


def _coerce(raw: str, flag: Flag) -> Any:  # noqa: ANN401
    """Convert an environment string to *flag*'s kind.

    Raises:
        ConfigError: If the string is not a valid value for the flag.
    """
    try:
        if flag.kind == FlagKind.BOOL:
            lowered = raw.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueError(f"not a boolean: {raw!r}")
        if flag.kind == FlagKind.INT:
            return int(raw)
        if flag.kind == FlagKind.FLOAT:
            return float(raw)
        if flag.kind == FlagKind.DURATION:
            return parse_duration(raw)
        if flag.kind == FlagKind.STRING_LIST:
            return split_list_values([raw])
    except ValueError as exc:
        raise ConfigError(f"Invalid value for flag '{flag.name}' from environment: {exc}") from exc
    return raw


def _lower_keys(data: Any) -> Any:  # noqa: ANN401
    if isinstance(data, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in data.items()}
    return data


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value


def _nested_get(data: dict[str, Any], path: list[str]) -> Any:  # noqa: ANN401
    node: Any = data
    for part in path:
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


def _nested_set(data: dict[str, Any], path: list[str], value: Any) -> None:  # noqa: ANN401
    node = data
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


def _flatten(data: dict[str, Any], prefix: str = "") -> list[str]:
    keys: list[str] = []
    for key, value in data.items():
        full = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            keys.extend(_flatten(value, f"{full}."))
        else:
            keys.append(full)
    return keys


# ---------------------------------------------------------------------------
# Global registry
# ---------------------------------------------------------------------------

_registry: Optional[Registry] = None


def get_registry() -> Registry:
    """Return the process-wide :class:`Registry`, creating a default one lazily."""
    global _registry
    if _registry is None:
        _registry = Registry()
    return _registry


def set_registry(registry: Registry) -> None:
    """Install *registry* as the process-wide instance."""
    global _registry
    _registry = registry


def reset_registry() -> None:
    """Drop the process-wide registry. Primarily useful in test suites."""
    global _registry
    _registry = None
