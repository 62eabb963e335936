"""Session inspection CLI commands.

``session`` prints the properties the configured mailer would run with,
``test-connection`` opens and closes a connection with them.
"""

from __future__ import annotations

import logging
from typing import Any

import lib_log_rich.runtime
import rich_click as click

from .....domain.enums import OutputFormat
from ...constants import CLICK_CONTEXT_SETTINGS
from ...context import get_cli_context
from ._common import build_mailer, execute_with_mail_error_handling, mailer_options

logger = logging.getLogger(__name__)


@click.command("session", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--format",
    "output_format",
    type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
    default=OutputFormat.HUMAN.value,
    help="Output format (human-readable or JSON)",
)
@mailer_options
@click.pass_context
def cli_session(ctx: click.Context, output_format: str, **mailer_settings: Any) -> None:
    """Show the session properties computed for the configured mailer.

    Secrets are redacted. When a proxy bridge would be started, its local
    port is reported after the properties.
    """
    cli_ctx = get_cli_context(ctx)
    fmt = OutputFormat(output_format.lower())

    with lib_log_rich.runtime.bind(job_id="cli-session", extra={"command": "session", "format": fmt.value}):
        mailer = execute_with_mail_error_handling(lambda: build_mailer(cli_ctx, mailer_settings))
        logger.info("Displaying session", extra={"protocol": mailer.session.protocol})
        cli_ctx.services.display_session(mailer.session, output_format=fmt)
        bridge = mailer.proxy_bridge
        if bridge is not None and fmt is OutputFormat.HUMAN:
            click.echo(
                f"\nProxy bridge: localhost:{bridge.listen_port} -> {bridge.proxy.host}:{bridge.proxy.port}"
                f" (user {bridge.proxy.username})"
            )


@click.command("test-connection", context_settings=CLICK_CONTEXT_SETTINGS)
@mailer_options
@click.pass_context
def cli_test_connection(ctx: click.Context, **mailer_settings: Any) -> None:
    """Connect to the configured SMTP server, negotiate TLS and log in, then disconnect."""
    cli_ctx = get_cli_context(ctx)

    with lib_log_rich.runtime.bind(job_id="cli-test-connection", extra={"command": "test-connection"}):
        mailer = execute_with_mail_error_handling(lambda: build_mailer(cli_ctx, mailer_settings))
        execute_with_mail_error_handling(mailer.test_connection)
        logger.info("Connection test succeeded", extra={"protocol": mailer.session.protocol})
        click.echo("\nConnection successful!")


__all__ = ["cli_session", "cli_test_connection"]
