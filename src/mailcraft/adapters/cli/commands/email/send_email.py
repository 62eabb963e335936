"""Send email CLI command.

Builds an :class:`~mailcraft.domain.email.Email` from options layered over
the ``[email]`` defaults and sends it with a mailer built from the
``[mailer]`` configuration and the shared mailer overrides.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import lib_log_rich.runtime
import rich_click as click

from .....application.mailer import validate_email
from .....domain.builder import EmailPopulatingBuilder
from .....domain.email import Email
from .....domain.recipient import FileDataSource
from ....mail.validation import validate_email_addresses
from ...constants import CLICK_CONTEXT_SETTINGS
from ...context import CLIContext, get_cli_context
from ._common import build_mailer, execute_with_mail_error_handling, mailer_options, parse_key_value

logger = logging.getLogger(__name__)


def _compose_email(
    cli_ctx: CLIContext,
    *,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    from_address: str | None,
    from_name: str | None,
    reply_to: str | None,
    bounce_to: str | None,
    subject: str | None,
    body: str | None,
    body_html: str | None,
    attachments: tuple[Path, ...],
    embedded_images: tuple[Path, ...],
    headers: dict[str, str],
    read_receipt: bool,
) -> Email:
    builder: EmailPopulatingBuilder = cli_ctx.services.email_builder(cli_ctx.config_data())
    if to or cc or bcc:
        builder.clear_recipients()
    if from_address:
        builder.from_(from_address, from_name)
    if reply_to:
        builder.with_reply_to(reply_to)
    if bounce_to:
        builder.with_bounce_to(bounce_to)
    builder.to_many(*to).cc_many(*cc).bcc_many(*bcc)
    if subject is not None:
        builder.with_subject(subject)
    builder.with_plain_text(body or None).with_html_text(body_html or None)
    for path in attachments:
        builder.with_attachment(path.name, FileDataSource(path))
    for path in embedded_images:
        builder.with_embedded_image(path.name, FileDataSource(path))
    builder.with_headers(headers)
    if read_receipt:
        builder.with_disposition_notification_to()
    email = builder.build_email()
    validate_email_addresses(email)
    return email


@click.command("send-email", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--to", "to", multiple=True, help="Recipient address (repeatable; replaces configured recipients)")
@click.option("--cc", "cc", multiple=True, help="Carbon-copy address (repeatable)")
@click.option("--bcc", "bcc", multiple=True, help="Blind carbon-copy address (repeatable)")
@click.option("--from", "from_address", default=None, help="Sender address (defaults to [email].from_address)")
@click.option("--from-name", default=None, help="Sender display name")
@click.option("--reply-to", default=None, help="Reply-To address")
@click.option("--bounce-to", default=None, help="Envelope sender for bounces")
@click.option("--subject", default=None, help="Subject line (defaults to [email].subject)")
@click.option("--body", default="", help="Plain-text body")
@click.option("--body-html", default="", help="HTML body")
@click.option(
    "--attachment",
    "attachments",
    multiple=True,
    type=click.Path(path_type=Path, dir_okay=False),
    help="File to attach (repeatable)",
)
@click.option(
    "--embed",
    "embedded_images",
    multiple=True,
    type=click.Path(path_type=Path, dir_okay=False),
    help="Inline image referenced from HTML as cid:<file name> (repeatable)",
)
@click.option(
    "--header",
    "headers",
    multiple=True,
    callback=parse_key_value,
    metavar="NAME=VALUE",
    help="Extra header (repeatable)",
)
@click.option("--read-receipt", is_flag=True, default=False, help="Request a Disposition-Notification-To receipt")
@click.option("--dry-run", is_flag=True, default=False, help="Print the MIME message instead of sending it")
@mailer_options
@click.pass_context
def cli_send_email(
    ctx: click.Context,
    to: tuple[str, ...],
    cc: tuple[str, ...],
    bcc: tuple[str, ...],
    from_address: str | None,
    from_name: str | None,
    reply_to: str | None,
    bounce_to: str | None,
    subject: str | None,
    body: str,
    body_html: str,
    attachments: tuple[Path, ...],
    embedded_images: tuple[Path, ...],
    headers: dict[str, str],
    read_receipt: bool,
    dry_run: bool,
    **mailer_settings: Any,
) -> None:
    """Send an email through the configured SMTP server.

    Example:
        >>> from click.testing import CliRunner
        >>> runner = CliRunner()
        >>> # Real invocation tested in test_cli_send_email.py
    """
    cli_ctx = get_cli_context(ctx)
    extra = {"command": "send-email", "to": list(to), "subject": subject, "dry_run": dry_run}

    with lib_log_rich.runtime.bind(job_id="cli-send-email", extra=extra):
        email = execute_with_mail_error_handling(
            lambda: _compose_email(
                cli_ctx,
                to=to,
                cc=cc,
                bcc=bcc,
                from_address=from_address,
                from_name=from_name,
                reply_to=reply_to,
                bounce_to=bounce_to,
                subject=subject,
                body=body,
                body_html=body_html,
                attachments=attachments,
                embedded_images=embedded_images,
                headers=headers,
                read_receipt=read_receipt,
            )
        )
        if dry_run:
            execute_with_mail_error_handling(lambda: validate_email(email))
            message = execute_with_mail_error_handling(lambda: cli_ctx.services.mailer_ports.convert(email))
            click.echo(message.as_string())
            return

        mailer = execute_with_mail_error_handling(lambda: build_mailer(cli_ctx, mailer_settings))
        with mailer:
            result = execute_with_mail_error_handling(lambda: mailer.send_mail(email))
        logger.info("Email sent via CLI", extra={"message_id": result.message_id})
        click.echo(f"\nEmail sent successfully! Message-ID: {result.message_id}")


__all__ = ["cli_send_email"]
