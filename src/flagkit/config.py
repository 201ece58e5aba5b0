"""Config-file discovery and loading with XDG paths.

Programs built with flagkit usually want settings from three places: flags,
environment variables and a config file. The first two are wired by
:func:`~flagkit.builder.apply`; this module finds and reads the third so it
can be layered into a :class:`~flagkit.registry.Registry`.

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD
  (``$XDG_CONFIG_HOME/<app>/``), ``~/.<app>/`` on macOS and Windows.
  See :func:`get_config_dir`.
* **Discovery** -- :func:`find_config_file` prefers a project-local
  ``./<app>.yaml`` / ``./<app>.yml`` / ``./<app>.json`` and falls back to
  ``config.yaml`` / ``config.yml`` / ``config.json`` in the config directory.
* **Loading** -- :func:`load_config_file` parses JSON or YAML (chosen by
  suffix) and insists on a mapping at the top level.
* **Registry settings** -- :func:`load_registry_config` turns the optional
  ``registry:`` section of the discovered file into a
  :class:`~flagkit.models.RegistryConfig`.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from flagkit.exceptions import ConfigError
from flagkit.models import RegistryConfig

_CONFIG_STEM = "config"
_SUFFIXES = (".yaml", ".yml", ".json")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir(app_name: str) -> Path:
    """Return the configuration directory for *app_name*.

    On Linux/BSD: ``$XDG_CONFIG_HOME/<app>/`` (default ``~/.config/<app>/``).
    On macOS/Windows: ``~/.<app>/``.

    The directory is not created; discovery only reads.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / app_name
    return Path.home() / f".{app_name}"


def get_data_dir(app_name: str) -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/<app>/`` (default ``~/.local/share/<app>/``).
    On macOS/Windows: ``~/.<app>/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / app_name
    else:
        path = Path.home() / f".{app_name}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Discovery ---


def find_config_file(app_name: str, cwd: Optional[Path] = None) -> Optional[Path]:
    """Locate the config file for *app_name*, or ``None``.

    Search order:
        1. ``<cwd>/<app>.yaml``, ``<cwd>/<app>.yml``, ``<cwd>/<app>.json``
        2. ``<config_dir>/config.yaml``, ``config.yml``, ``config.json``
    """
    base = cwd if cwd is not None else Path.cwd()
    for suffix in _SUFFIXES:
        candidate = base / f"{app_name}{suffix}"
        if candidate.is_file():
            return candidate

    config_dir = get_config_dir(app_name)
    for suffix in _SUFFIXES:
        candidate = config_dir / f"{_CONFIG_STEM}{suffix}"
        if candidate.is_file():
            return candidate
    return None


# --- Loading ---


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON or YAML config file into a dict.

    Files ending in ``.json`` are read as JSON; everything else as YAML
    (YAML is a superset of JSON). An empty YAML file yields ``{}``.

    Raises:
        ConfigError: If the file does not exist, cannot be parsed, or its
            top level is not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_registry_config(app_name: str, env_prefix: Optional[str] = None) -> RegistryConfig:
    """Build registry settings for *app_name* from its discovered config file.

    Reads the optional ``registry`` section of the file found by
    :func:`find_config_file` and points ``config_file`` at that file so the
    rest of its contents land in the registry's config layer. *env_prefix*
    is used when the file does not set one.

    Raises:
        ConfigError: If the file is invalid or its ``registry`` section fails
            validation.
    """
    path = find_config_file(app_name)
    if path is None:
        return RegistryConfig(env_prefix=env_prefix)

    section = load_config_file(path).get("registry") or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'registry' section in {path} must be a mapping")
    try:
        config = RegistryConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigError(f"Invalid 'registry' section in {path}: {exc}") from exc
    if config.env_prefix is None:
        config.env_prefix = env_prefix
    if config.config_file is None:
        config.config_file = str(path)
    return config
