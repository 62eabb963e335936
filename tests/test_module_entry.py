"""Module entry stories ensuring `python -m mailcraft` mirrors the console script."""

from __future__ import annotations

import runpy
import sys

import pytest

from mailcraft import __init__conf__, entry
from mailcraft.adapters.cli import ExitCode


@pytest.mark.os_agnostic
def test_module_entry_shows_help_without_arguments(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    managed_traceback_state: None,
) -> None:
    """python -m mailcraft with no args shows help and exits 0."""
    monkeypatch.setattr(sys, "argv", ["mailcraft"], raising=False)

    with pytest.raises(SystemExit) as exc:
        runpy.run_module("mailcraft.__main__", run_name="__main__")

    assert exc.value.code == 0
    assert "Usage:" in capsys.readouterr().out


@pytest.mark.os_agnostic
def test_module_entry_reports_version(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    managed_traceback_state: None,
) -> None:
    """--version through the module entry prints the package version."""
    monkeypatch.setattr(sys, "argv", ["mailcraft", "--version"], raising=False)

    with pytest.raises(SystemExit) as exc:
        runpy.run_module("mailcraft.__main__", run_name="__main__")

    assert exc.value.code == 0
    assert __init__conf__.version in capsys.readouterr().out


@pytest.mark.os_agnostic
def test_module_entry_returns_command_exit_codes(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    managed_traceback_state: None,
) -> None:
    """A rejected recipient surfaces as exit code 22 from the module entry."""
    monkeypatch.setattr(sys, "argv", ["mailcraft", "send-email", "--to", "broken", "--dry-run"], raising=False)

    with pytest.raises(SystemExit) as exc:
        runpy.run_module("mailcraft.__main__", run_name="__main__")

    assert exc.value.code == ExitCode.INVALID_ARGUMENT
    assert "broken" in capsys.readouterr().err


@pytest.mark.os_agnostic
def test_console_script_entry_returns_exit_code(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
    managed_traceback_state: None,
) -> None:
    """entry.main wires production services and returns instead of exiting."""
    monkeypatch.setattr(sys, "argv", ["mailcraft", "info", "--format", "json"], raising=False)

    assert entry.main() == 0
    assert '"name":"mailcraft"' in capsys.readouterr().out
