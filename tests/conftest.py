"""Shared pytest fixtures for domain, mailer and CLI tests.

Tests receive fixtures implicitly via pytest's conftest discovery; nothing
here is imported directly.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import lib_cli_exit_tools
import pytest
from click.testing import CliRunner
from lib_layered_config import Config

from mailcraft.domain.transport_strategy import reset_opportunistic_tls_defaults

if TYPE_CHECKING:
    from mailcraft.adapters.memory import BridgeSpy, DisplaySpy, TransportSpy
    from mailcraft.composition import AppServices


def _load_dotenv() -> None:
    """Load .env file when it exists for integration test configuration."""
    from dotenv import load_dotenv

    env_file = Path(__file__).parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)


_load_dotenv()

ANSI_ESCAPE_PATTERN = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")
CONFIG_FIELDS: tuple[str, ...] = tuple(field.name for field in fields(type(lib_cli_exit_tools.config)))


def _snapshot_cli_config() -> dict[str, object]:
    return {name: getattr(lib_cli_exit_tools.config, name) for name in CONFIG_FIELDS}


def _restore_cli_config(snapshot: dict[str, object]) -> None:
    for name, value in snapshot.items():
        setattr(lib_cli_exit_tools.config, name, value)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a fresh CliRunner per test.

    Use ``result.stdout`` for machine-readable output; error messages go to
    ``result.stderr``.
    """
    return CliRunner()


@pytest.fixture
def strip_ansi() -> Callable[[str], str]:
    """Return a helper that strips ANSI escape sequences from a string."""

    def _strip(value: str) -> str:
        return ANSI_ESCAPE_PATTERN.sub("", value)

    return _strip


@pytest.fixture
def managed_traceback_state() -> Iterator[None]:
    """Reset traceback flags to a known baseline and restore after the test."""
    lib_cli_exit_tools.reset_config()
    lib_cli_exit_tools.config.traceback = False
    lib_cli_exit_tools.config.traceback_force_color = False
    snapshot = _snapshot_cli_config()
    try:
        yield
    finally:
        _restore_cli_config(snapshot)


@pytest.fixture
def clear_config_cache() -> Iterator[None]:
    """Clear the get_config lru_cache before the test."""
    from mailcraft.adapters.config import loader as config_mod

    config_mod.get_config.cache_clear()
    yield


@pytest.fixture(autouse=True)
def restore_opportunistic_tls_defaults() -> Iterator[None]:
    """Undo process-wide opportunistic-TLS changes made by a test."""
    yield
    reset_opportunistic_tls_defaults()


@pytest.fixture
def config_factory() -> Callable[[dict[str, Any]], Config]:
    """Create real Config instances from test data dicts, without filesystem I/O."""

    def _factory(data: dict[str, Any]) -> Config:
        return Config(data, {})

    return _factory


@pytest.fixture
def transport_spy() -> TransportSpy:
    """Provide a TransportSpy that records deliveries instead of sending."""
    from mailcraft.adapters.memory import TransportSpy

    return TransportSpy()


@pytest.fixture
def bridge_spy() -> BridgeSpy:
    """Provide a BridgeSpy that records proxy bridge starts and stops."""
    from mailcraft.adapters.memory import BridgeSpy

    return BridgeSpy()


@pytest.fixture
def display_spy() -> DisplaySpy:
    """Provide a DisplaySpy that records display requests."""
    from mailcraft.adapters.memory import DisplaySpy

    return DisplaySpy()


@pytest.fixture
def services(transport_spy: TransportSpy, bridge_spy: BridgeSpy, display_spy: DisplaySpy) -> AppServices:
    """Testing services wired to the spies above with an empty configuration."""
    from mailcraft.composition import build_testing

    return build_testing(transport=transport_spy, bridge=bridge_spy, display=display_spy)


@pytest.fixture
def services_with_config(
    transport_spy: TransportSpy,
    bridge_spy: BridgeSpy,
    display_spy: DisplaySpy,
) -> Callable[[dict[str, Any]], Callable[[], AppServices]]:
    """Return a factory producing CLI ``obj`` callables that serve ``data`` as configuration.

    Logging goes through the real lib_log_rich runtime, like production.

    Example:
        def test_session(cli_runner, services_with_config) -> None:
            factory = services_with_config({"mailer": {"smtp_host": "smtp.test"}})
            result = cli_runner.invoke(cli, ["session"], obj=factory)
    """
    from mailcraft.adapters.logging import init_logging
    from mailcraft.composition import build_testing

    def _inject(data: dict[str, Any]) -> Callable[[], AppServices]:
        services = replace(
            build_testing(transport=transport_spy, bridge=bridge_spy, display=display_spy, config=data),
            init_logging=init_logging,
        )
        return lambda: services

    return _inject


@pytest.fixture
def mail_ready_config() -> dict[str, Any]:
    """Configuration data with a complete ``[mailer]`` and ``[email]`` section."""
    return {
        "mailer": {
            "smtp_host": "smtp.test.com",
            "smtp_port": 587,
            "smtp_username": "robot",
            "smtp_password": "s3cret",
            "transport_strategy": "SMTP_TLS",
        },
        "email": {
            "from_address": "sender@test.com",
            "to": ["recipient@test.com"],
        },
    }


def _free_port() -> int:
    """Find a free TCP port on 127.0.0.1."""
    import socket

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as probe:
        probe.bind(("127.0.0.1", 0))
        return int(probe.getsockname()[1])


@pytest.fixture
def free_port() -> Callable[[], int]:
    """Return a helper that finds a free local port."""
    return _free_port


class CapturingSMTPHandler:
    """aiosmtpd handler that records every accepted message."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def handle_DATA(self, server: Any, session: Any, envelope: Any) -> str:
        self.messages.append(
            {
                "from": envelope.mail_from,
                "to": list(envelope.rcpt_tos),
                "data": envelope.content,
            }
        )
        return "250 Message accepted for delivery"


@pytest.fixture
def smtp_server() -> Iterator[tuple[CapturingSMTPHandler, int]]:
    """Start an aiosmtpd server on 127.0.0.1 and yield its handler and port."""
    from aiosmtpd.controller import Controller

    handler = CapturingSMTPHandler()
    port = _free_port()
    controller = Controller(handler, hostname="127.0.0.1", port=port)
    controller.start()
    try:
        yield handler, port
    finally:
        controller.stop()
