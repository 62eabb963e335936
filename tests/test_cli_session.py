"""session and test-connection commands: mailer options, display and error mapping."""

from __future__ import annotations

import smtplib
from collections.abc import Callable
from typing import Any

import pytest
from click.testing import CliRunner

from mailcraft.adapters.cli import ExitCode, cli
from mailcraft.adapters.memory import BridgeSpy, DisplaySpy, TransportSpy
from mailcraft.composition import AppServices
from mailcraft.domain.enums import OutputFormat

ServicesFactory = Callable[[dict[str, Any]], Callable[[], AppServices]]


# ======================== session ========================


@pytest.mark.os_agnostic
def test_session_displays_properties_from_config(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    display_spy: DisplaySpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """The [mailer] section drives the displayed session."""
    result = cli_runner.invoke(cli, ["session", "--format", "json"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == 0
    session, output_format = display_spy.sessions[0]
    assert output_format is OutputFormat.JSON
    assert session.get("mail.smtp.host") == "smtp.test.com"
    assert session.get("mail.smtp.port") == "587"
    assert session.get("mail.smtp.starttls.required") == "true"
    assert session.get("mail.smtp.auth") == "true"


@pytest.mark.os_agnostic
def test_session_options_override_config(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    display_spy: DisplaySpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """Command-line mailer options win over configured values."""
    result = cli_runner.invoke(
        cli,
        [
            "session",
            "--smtp-host",
            "override.test.com",
            "--transport-strategy",
            "smtps",
            "--session-timeout",
            "5000",
            "--smtp-debug",
        ],
        obj=services_with_config(mail_ready_config),
    )

    assert result.exit_code == 0
    session, _ = display_spy.sessions[0]
    assert session.protocol == "smtps"
    assert session.get("mail.smtps.host") == "override.test.com"
    assert session.get("mail.smtps.timeout") == "5000"
    assert session.debug is True


@pytest.mark.os_agnostic
def test_session_property_option_is_merged_last(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    display_spy: DisplaySpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """--property replaces computed values."""
    result = cli_runner.invoke(
        cli,
        ["session", "--property", "mail.smtp.starttls.required=false", "--property", "mail.smtp.localhost=relay"],
        obj=services_with_config(mail_ready_config),
    )

    assert result.exit_code == 0
    session, _ = display_spy.sessions[0]
    assert session.get("mail.smtp.starttls.required") == "false"
    assert session.get("mail.smtp.localhost") == "relay"


@pytest.mark.os_agnostic
def test_malformed_property_option_is_rejected(
    cli_runner: CliRunner, services_with_config: ServicesFactory, mail_ready_config: dict[str, Any]
) -> None:
    """--property needs KEY=VALUE."""
    result = cli_runner.invoke(
        cli, ["session", "--property", "mail.smtp.localhost"], obj=services_with_config(mail_ready_config)
    )

    assert result.exit_code == 2
    assert "KEY=VALUE" in result.output


@pytest.mark.os_agnostic
def test_session_reports_the_proxy_bridge_in_human_mode(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    bridge_spy: BridgeSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """An authenticating proxy is announced without starting a bridge."""
    result = cli_runner.invoke(
        cli,
        [
            "session",
            "--proxy-host",
            "proxy.test.com",
            "--proxy-port",
            "1081",
            "--proxy-username",
            "proxyuser",
            "--proxy-password",
            "proxypass",
            "--proxy-bridge-port",
            "2080",
        ],
        obj=services_with_config(mail_ready_config),
    )

    assert result.exit_code == 0
    assert "Proxy bridge: localhost:2080 -> proxy.test.com:1081 (user proxyuser)" in result.stdout
    assert "proxypass" not in result.output
    assert bridge_spy.started == []


@pytest.mark.os_agnostic
def test_session_json_mode_omits_bridge_line(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    display_spy: DisplaySpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """JSON output stays a single document."""
    proxy_args = ["--proxy-host", "proxy.test.com", "--proxy-port", "1081", "--proxy-username", "u"]

    result = cli_runner.invoke(
        cli, ["session", "--format", "json", *proxy_args], obj=services_with_config(mail_ready_config)
    )

    assert result.exit_code == 0
    assert "Proxy bridge" not in result.stdout
    assert display_spy.sessions[0][0].get("mail.smtp.socks.host") == "localhost"


@pytest.mark.os_agnostic
def test_session_without_host_is_a_config_error(cli_runner: CliRunner, services_with_config: ServicesFactory) -> None:
    """No SMTP host anywhere exits with 78 and points at the config command."""
    result = cli_runner.invoke(cli, ["session"], obj=services_with_config({}))

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "Configuration error" in result.stderr
    assert "mailcraft config --section mailer" in result.stderr


@pytest.mark.os_agnostic
def test_invalid_mailer_section_is_a_config_error(cli_runner: CliRunner, services_with_config: ServicesFactory) -> None:
    """A [mailer] value that fails validation exits with 78."""
    result = cli_runner.invoke(
        cli, ["session"], obj=services_with_config({"mailer": {"smtp_host": "h", "transport_strategy": "pigeon"}})
    )

    assert result.exit_code == ExitCode.CONFIG_ERROR


@pytest.mark.os_agnostic
def test_out_of_range_port_option_is_a_usage_error(
    cli_runner: CliRunner, services_with_config: ServicesFactory, mail_ready_config: dict[str, Any]
) -> None:
    """Click rejects ports outside 1..65535 before any mailer is built."""
    result = cli_runner.invoke(cli, ["session", "--smtp-port", "70000"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == 2


# ======================== test-connection ========================


@pytest.mark.os_agnostic
def test_connection_success_probes_the_session(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    transport_spy: TransportSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """A successful probe prints a confirmation."""
    result = cli_runner.invoke(cli, ["test-connection"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == 0
    assert "Connection successful!" in result.stdout
    assert transport_spy.probes[0].get("mail.smtp.host") == "smtp.test.com"
    assert transport_spy.deliveries == []


@pytest.mark.os_agnostic
def test_connection_through_authenticating_proxy_runs_the_bridge(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    bridge_spy: BridgeSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """The bridge is started for the probe and stopped afterwards."""
    result = cli_runner.invoke(
        cli,
        [
            "test-connection",
            "--proxy-host",
            "proxy.test.com",
            "--proxy-port",
            "1081",
            "--proxy-username",
            "u",
            "--proxy-password",
            "p",
        ],
        obj=services_with_config(mail_ready_config),
    )

    assert result.exit_code == 0
    assert len(bridge_spy.started) == 1
    assert bridge_spy.running == 0


@pytest.mark.os_agnostic
def test_connection_failure_exits_with_smtp_failure(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    transport_spy: TransportSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """SMTP errors map to exit code 69 with a sanitised message."""
    transport_spy.raise_exception = smtplib.SMTPAuthenticationError(535, b"Authentication failed")

    result = cli_runner.invoke(cli, ["test-connection"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == ExitCode.SMTP_FAILURE
    assert "SMTP delivery failed" in result.stderr
    assert "Connection successful!" not in result.stdout


@pytest.mark.os_agnostic
def test_connection_timeout_exits_with_timeout(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    transport_spy: TransportSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """A server that never answers maps to exit code 110."""
    transport_spy.raise_exception = TimeoutError("timed out")

    result = cli_runner.invoke(cli, ["test-connection"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == ExitCode.TIMEOUT


@pytest.mark.os_agnostic
def test_connection_refused_exits_with_smtp_failure(
    cli_runner: CliRunner,
    services_with_config: ServicesFactory,
    transport_spy: TransportSpy,
    mail_ready_config: dict[str, Any],
) -> None:
    """Socket errors are reported like SMTP errors."""
    transport_spy.raise_exception = ConnectionRefusedError(111, "Connection refused")

    result = cli_runner.invoke(cli, ["test-connection"], obj=services_with_config(mail_ready_config))

    assert result.exit_code == ExitCode.SMTP_FAILURE
