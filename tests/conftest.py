"""Shared test fixtures for flagkit.

Provides reusable fixtures for isolated registries and config directories,
global output state, fresh command trees, and CLI runners. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from flagkit.command import Command
from flagkit.output import OutputFormat, OutputManager, reset_output, set_output
from flagkit.registry import Registry, reset_registry


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Reset the global OutputManager and Registry after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once a CliRunner test finishes. The
    process-wide Registry keeps bindings to flags from earlier tests.
    """
    yield
    reset_output()
    reset_registry()


# ---------------------------------------------------------------------------
# Registry / config isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def registry() -> Registry:
    """A fresh registry with no prefix."""
    return Registry()


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and XDG_DATA_HOME at subdirectories of tmp_path
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("flagkit.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@pytest.fixture
def root() -> Command:
    """A bare root command that records its invocations in ``root.calls``."""
    calls: list[list[str]] = []

    def _run(cmd: Command, args: list[str]) -> str:
        calls.append(args)
        return "ran"

    command = Command("tool", callback=_run, help="Test tool.")
    command.calls = calls  # type: ignore[attr-defined]
    return command


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
