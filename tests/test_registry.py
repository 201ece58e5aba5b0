"""Tests for flagkit.registry.

Covers:
- bind_flag conflicts and idempotent rebinding
- Environment variable naming with and without prefix
- Precedence: command line > env > config file > default > flag default
- Type coercion of environment strings for bound flags
- Config files (JSON / YAML) and dotted keys
- Global registry management
"""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path

import pytest

from flagkit.builder import apply_all, flag
from flagkit.command import Command
from flagkit.exceptions import BindingConflictError, ConfigError
from flagkit.models import Flag, FlagKind, RegistryConfig
from flagkit.options import env, env_name, persistent
from flagkit.registry import Registry, get_registry, reset_registry, set_registry
from flagkit.types import boolean, duration, integer, string, string_list


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep variables from the surrounding shell out of resolution."""
    for var in ["CONFIG", "PORT", "VALUE", "DEBUG", "TIMEOUT", "TAGS", "POOL_WORKERS", "REGION"]:
        monkeypatch.delenv(var, raising=False)


def _flag(name: str = "config", kind: FlagKind = FlagKind.STRING, default=None) -> Flag:
    return Flag(name=name, kind=kind, default=default)


# ------------------------------------------------------------------ #
# Binding
# ------------------------------------------------------------------ #


class TestBinding:
    """bind_flag semantics."""

    def test_bind_and_lookup(self, registry: Registry) -> None:
        handle = _flag()
        registry.bind_flag("config", handle)
        assert registry.bound_flag("config") is handle
        assert registry.bound_keys() == ["config"]

    def test_rebinding_same_flag_is_noop(self, registry: Registry) -> None:
        handle = _flag()
        registry.bind_flag("config", handle)
        registry.bind_flag("config", handle)
        assert registry.bound_keys() == ["config"]

    def test_conflict(self, registry: Registry) -> None:
        registry.bind_flag("config", _flag("a"))
        with pytest.raises(BindingConflictError, match="'a'"):
            registry.bind_flag("config", _flag("b"))

    def test_keys_case_insensitive(self, registry: Registry) -> None:
        handle = _flag()
        registry.bind_flag("Config", handle)
        assert registry.bound_flag("CONFIG") is handle

    @pytest.mark.parametrize(
        "prefix, key, expected",
        [
            (None, "config", "CONFIG"),
            (None, "log-level", "LOG_LEVEL"),
            ("mytool", "db.host", "MYTOOL_DB_HOST"),
            ("my-tool", "port", "MY_TOOL_PORT"),
        ],
    )
    def test_env_var_names(self, prefix, key: str, expected: str) -> None:
        assert Registry(env_prefix=prefix).env_var(key) == expected


# ------------------------------------------------------------------ #
# Precedence
# ------------------------------------------------------------------ #


class TestPrecedence:
    """Resolution order across layers."""

    def test_flag_default_last(self, registry: Registry) -> None:
        registry.bind_flag("config", _flag(default="default.yaml"))
        assert registry.get("config") == "default.yaml"
        assert registry.is_set("config") is False

    def test_set_default_beats_flag_default(self, registry: Registry) -> None:
        registry.bind_flag("config", _flag(default="default.yaml"))
        registry.set_default("config", "fallback.yaml")
        assert registry.get("config") == "fallback.yaml"

    def test_config_beats_default(self, registry: Registry) -> None:
        registry.bind_flag("config", _flag(default="default.yaml"))
        registry.set_default("config", "fallback.yaml")
        registry.set_config("config", "file.yaml")
        assert registry.get("config") == "file.yaml"

    def test_env_beats_config(self, registry: Registry, monkeypatch: pytest.MonkeyPatch) -> None:
        registry.bind_flag("config", _flag(default="default.yaml"))
        registry.set_config("config", "file.yaml")
        monkeypatch.setenv("CONFIG", "env.yaml")
        assert registry.get("config") == "env.yaml"
        assert registry.is_set("config") is True

    def test_command_line_beats_env(self, registry: Registry, monkeypatch: pytest.MonkeyPatch) -> None:
        handle = _flag(default="default.yaml")
        registry.bind_flag("config", handle)
        monkeypatch.setenv("CONFIG", "env.yaml")
        handle.set("cli.yaml")
        assert registry.get("config") == "cli.yaml"

    def test_automatic_env_off(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = Registry(automatic_env=False)
        registry.bind_flag("config", _flag(default="default.yaml"))
        monkeypatch.setenv("CONFIG", "env.yaml")
        assert registry.get("config") == "default.yaml"

    def test_prefixed_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = Registry(env_prefix="MYTOOL")
        registry.bind_flag("config", _flag(default="default.yaml"))
        monkeypatch.setenv("CONFIG", "ignored.yaml")
        monkeypatch.setenv("MYTOOL_CONFIG", "env.yaml")
        assert registry.get("config") == "env.yaml"

    def test_empty_env_is_unset(self, registry: Registry, monkeypatch: pytest.MonkeyPatch) -> None:
        registry.bind_flag("region", _flag("region", default="eu"))
        monkeypatch.setenv("REGION", "")
        assert registry.get("region") == "eu"
        assert registry.is_set("region") is False

        registry.set_config("region", "ap")
        assert registry.get("region") == "ap"

    def test_empty_env_does_not_break_typed_flags(
        self, registry: Registry, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        registry.bind_flag("port", _flag("port", FlagKind.INT, 80))
        monkeypatch.setenv("PORT", "")
        assert registry.get("port") == 80

    def test_allow_empty_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = Registry.from_config(RegistryConfig(allow_empty_env=True))
        registry.bind_flag("region", _flag("region", default="eu"))
        monkeypatch.setenv("REGION", "")
        assert registry.get("region") == ""

    def test_unknown_key(self, registry: Registry) -> None:
        assert registry.get("nope") is None
        assert registry.get("nope", "fallback") == "fallback"

    def test_unbound_env_is_raw_string(self, registry: Registry, monkeypatch: pytest.MonkeyPatch) -> None:
        registry.set_default("port", 80)
        monkeypatch.setenv("PORT", "8080")
        assert registry.get("port") == "8080"


class TestCoercion:
    """Environment strings take the bound flag's kind."""

    @pytest.mark.parametrize(
        "kind, raw, expected",
        [
            (FlagKind.BOOL, "true", True),
            (FlagKind.BOOL, "0", False),
            (FlagKind.BOOL, "Yes", True),
            (FlagKind.INT, "42", 42),
            (FlagKind.FLOAT, "0.25", 0.25),
            (FlagKind.DURATION, "1m", timedelta(minutes=1)),
            (FlagKind.STRING_LIST, "a,b", ["a", "b"]),
            (FlagKind.STRING, "plain", "plain"),
        ],
    )
    def test_coerce(self, registry: Registry, monkeypatch: pytest.MonkeyPatch, kind, raw, expected) -> None:
        registry.bind_flag("value", _flag("value", kind))
        monkeypatch.setenv("VALUE", raw)
        assert registry.get("value") == expected

    def test_invalid_env_value(self, registry: Registry, monkeypatch: pytest.MonkeyPatch) -> None:
        registry.bind_flag("port", _flag("port", FlagKind.INT, 80))
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ConfigError, match="port"):
            registry.get("port")


# ------------------------------------------------------------------ #
# Config files
# ------------------------------------------------------------------ #


class TestConfigFiles:
    """read_config_file and nested keys."""

    def test_yaml_nested(self, registry: Registry, tmp_path: Path) -> None:
        path = tmp_path / "tool.yaml"
        path.write_text("db:\n  host: localhost\n  Port: 5432\nname: demo\n")
        registry.read_config_file(path)
        assert registry.get("db.host") == "localhost"
        assert registry.get("db.port") == 5432
        assert registry.get("db") == {"host": "localhost", "port": 5432}
        assert registry.keys() == ["db.host", "db.port", "name"]

    def test_json(self, registry: Registry, tmp_path: Path) -> None:
        path = tmp_path / "tool.json"
        path.write_text(json.dumps({"config": "file.yaml"}))
        registry.read_config_file(path)
        assert registry.get("config") == "file.yaml"

    def test_merge_is_deep(self, registry: Registry) -> None:
        registry.merge_config({"db": {"host": "a", "port": 1}})
        registry.merge_config({"db": {"host": "b"}})
        assert registry.get("db.host") == "b"
        assert registry.get("db.port") == 1

    def test_set_config_nested(self, registry: Registry) -> None:
        registry.set_config("server.tls.enabled", True)
        assert registry.get("server.tls.enabled") is True

    def test_missing_file(self, registry: Registry, tmp_path: Path) -> None:
        with pytest.raises(ConfigError):
            registry.read_config_file(tmp_path / "missing.yaml")

    def test_from_config(self, tmp_path: Path) -> None:
        path = tmp_path / "tool.yaml"
        path.write_text("port: 9000\n")
        registry = Registry.from_config(RegistryConfig(env_prefix="T", config_file=str(path)))
        assert registry.env_prefix == "T"
        assert registry.get("port") == 9000

    def test_all_settings(self, registry: Registry) -> None:
        registry.bind_flag("config", _flag(default="d.yaml"))
        registry.set_config("port", 1)
        assert registry.all_settings() == {"config": "d.yaml", "port": 1}


# ------------------------------------------------------------------ #
# End to end with a command
# ------------------------------------------------------------------ #


class TestWithCommand:
    """Declarations applied to a command and resolved through the registry."""

    def _build(self, registry: Registry) -> Command:
        root = Command("tool", callback=lambda cmd, args: registry.all_settings())
        apply_all(
            root,
            [
                flag("config", string("default.yaml"), persistent(), env()),
                flag("workers", integer(2), env_name("pool.workers")),
                flag("debug", boolean(), env()),
                flag("timeout", duration("30s"), env()),
                flag("tags", string_list(), env()),
            ],
            registry,
        )
        return root

    def test_defaults(self, registry: Registry) -> None:
        settings = self._build(registry).execute([])
        assert settings == {
            "config": "default.yaml",
            "debug": False,
            "pool.workers": 2,
            "tags": [],
            "timeout": timedelta(seconds=30),
        }

    def test_layers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        registry = Registry(env_prefix="TOOL")
        registry.set_config("pool.workers", 4)
        monkeypatch.setenv("TOOL_DEBUG", "true")
        monkeypatch.setenv("TOOL_CONFIG", "env.yaml")
        settings = self._build(registry).execute(["--config", "cli.yaml", "--timeout", "5s"])
        assert settings["config"] == "cli.yaml"
        assert settings["debug"] is True
        assert settings["pool.workers"] == 4
        assert settings["timeout"] == timedelta(seconds=5)


# ------------------------------------------------------------------ #
# Global registry
# ------------------------------------------------------------------ #


class TestGlobalRegistry:
    """get/set/reset of the process-wide registry."""

    def test_lazy_singleton(self) -> None:
        assert get_registry() is get_registry()

    def test_set_and_reset(self) -> None:
        custom = Registry(env_prefix="X")
        set_registry(custom)
        assert get_registry() is custom
        reset_registry()
        assert get_registry() is not custom
