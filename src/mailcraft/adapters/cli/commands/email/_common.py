"""Shared utilities for mailer CLI commands.

Contains the mailer override options, mailer construction from the loaded
configuration plus those overrides, and the mapping from mail errors to
exit codes used by ``session``, ``test-connection`` and ``send-email``.
"""

from __future__ import annotations

import functools
import logging
import smtplib
from collections.abc import Callable
from typing import Any, NoReturn, TypeVar

import rich_click as click
from pydantic import ValidationError

from ..... import __init__conf__
from .....application.mailer import Mailer, MailerBuilder
from .....domain.errors import ConfigurationError
from .....domain.transport_strategy import TransportStrategy
from ....mail.transport import sanitize_exception_message
from ...context import CLIContext
from ...exit_codes import ExitCode

logger = logging.getLogger(__name__)

T = TypeVar("T")


def parse_key_value(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:
    """Click callback turning repeated ``KEY=VALUE`` options into a dict.

    Example:
        >>> parse_key_value(None, None, ("mail.smtp.localhost=relay", "X-Team=ops"))  # type: ignore[arg-type]
        {'mail.smtp.localhost': 'relay', 'X-Team': 'ops'}
    """
    result: dict[str, str] = {}
    for raw in values:
        key, separator, value = raw.partition("=")
        if not separator or not key.strip():
            raise click.BadParameter(f"expected KEY=VALUE, got {raw!r}", ctx=ctx, param=param)
        result[key.strip()] = value
    return result


def mailer_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Apply the mailer override options to a Click command.

    Every option left unset falls back to the ``[mailer]`` configuration,
    then to the built-in default.
    """
    options = [
        click.option("--smtp-host", default=None, help="SMTP server host"),
        click.option("--smtp-port", type=click.IntRange(1, 65535), default=None, help="SMTP server port"),
        click.option("--smtp-username", default=None, help="SMTP authentication username"),
        click.option("--smtp-password", default=None, help="SMTP authentication password"),
        click.option(
            "--transport-strategy",
            type=click.Choice([strategy.value for strategy in TransportStrategy], case_sensitive=False),
            default=None,
            help="SMTP (opportunistic STARTTLS), SMTP_TLS (mandatory STARTTLS) or SMTPS (implicit TLS)",
        ),
        click.option("--proxy-host", default=None, help="SOCKS5 proxy host"),
        click.option("--proxy-port", type=click.IntRange(1, 65535), default=None, help="SOCKS5 proxy port"),
        click.option("--proxy-username", default=None, help="SOCKS5 proxy username (enables the local bridge)"),
        click.option("--proxy-password", default=None, help="SOCKS5 proxy password"),
        click.option(
            "--proxy-bridge-port",
            type=click.IntRange(1, 65535),
            default=None,
            help="Local port for the authenticating proxy bridge",
        ),
        click.option(
            "--opportunistic-tls/--no-opportunistic-tls",
            default=None,
            help="Attempt STARTTLS on plain SMTP without requiring it",
        ),
        click.option("--smtp-debug/--no-smtp-debug", default=None, help="Trace the SMTP conversation on stderr"),
        click.option(
            "--session-timeout",
            "session_timeout_ms",
            type=click.IntRange(min=1),
            default=None,
            help="Socket timeouts in milliseconds",
        ),
        click.option(
            "--property",
            "properties",
            multiple=True,
            callback=parse_key_value,
            metavar="KEY=VALUE",
            help="Raw session property; overrides computed values (repeatable)",
        ),
    ]
    return functools.reduce(lambda f, opt: opt(f), reversed(options), func)


def _apply_mailer_options(builder: MailerBuilder, options: dict[str, Any]) -> MailerBuilder:
    setters: dict[str, Callable[[Any], MailerBuilder]] = {
        "smtp_host": builder.with_smtp_server_host,
        "smtp_port": builder.with_smtp_server_port,
        "smtp_username": builder.with_smtp_server_username,
        "smtp_password": builder.with_smtp_server_password,
        "transport_strategy": lambda value: builder.with_transport_strategy(str(value).upper()),
        "proxy_host": builder.with_proxy_host,
        "proxy_port": builder.with_proxy_port,
        "proxy_username": builder.with_proxy_username,
        "proxy_password": builder.with_proxy_password,
        "proxy_bridge_port": builder.with_proxy_bridge_port,
        "opportunistic_tls": builder.with_opportunistic_tls,
        "smtp_debug": builder.with_debug_logging,
        "session_timeout_ms": builder.with_session_timeout,
        "properties": builder.with_properties,
    }
    for name, value in options.items():
        if value is None or value == {}:
            continue
        setters[name](value)
    return builder


def build_mailer(cli_ctx: CLIContext, options: dict[str, Any]) -> Mailer:
    """Build a mailer from the loaded configuration and command-line overrides.

    Raises:
        ConfigurationError: When no SMTP host is available.
        ValidationError: When the ``[mailer]`` section is invalid.
    """
    builder = cli_ctx.services.mailer_builder(cli_ctx.config_data())
    return _apply_mailer_options(builder, options).build_mailer()


def _fail(
    exc: BaseException,
    user_message: str,
    exit_code: ExitCode,
    *,
    hint: str | None = None,
    sanitize: bool = False,
) -> NoReturn:
    detail = sanitize_exception_message(exc) if sanitize else str(exc)
    logger.error(user_message, extra={"error": detail, "error_type": type(exc).__name__})
    click.echo(f"\nError: {user_message} - {detail}", err=True)
    if hint:
        click.echo(hint, err=True)
    raise SystemExit(exit_code)


def execute_with_mail_error_handling(operation: Callable[[], T]) -> T:
    """Run ``operation`` and translate mail errors into exit codes.

    Exception order matters: pydantic's ``ValidationError`` and
    ``FileNotFoundError`` are subclasses of broader handled types.

    * ConfigurationError, ValidationError -> CONFIG_ERROR (78)
    * other ValueError, including EmailValidationError -> INVALID_ARGUMENT (22)
    * FileNotFoundError -> FILE_NOT_FOUND (2)
    * TimeoutError -> TIMEOUT (110)
    * SMTPException, OSError -> SMTP_FAILURE (69)

    Anything else propagates to ``lib_cli_exit_tools``.
    """
    try:
        return operation()
    except (ConfigurationError, ValidationError) as exc:
        _fail(
            exc,
            "Configuration error",
            ExitCode.CONFIG_ERROR,
            hint=f"Inspect the [mailer] section with: {__init__conf__.shell_command} config --section mailer",
        )
    except ValueError as exc:
        _fail(exc, "Invalid email parameters", ExitCode.INVALID_ARGUMENT)
    except FileNotFoundError as exc:
        _fail(exc, "Attachment file not found", ExitCode.FILE_NOT_FOUND)
    except TimeoutError as exc:
        _fail(exc, "SMTP server timed out", ExitCode.TIMEOUT, sanitize=True)
    except (smtplib.SMTPException, OSError) as exc:
        _fail(exc, "SMTP delivery failed", ExitCode.SMTP_FAILURE, sanitize=True)


__all__ = [
    "build_mailer",
    "execute_with_mail_error_handling",
    "mailer_options",
    "parse_key_value",
]
