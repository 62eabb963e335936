"""Root CLI command group and global option handling.

Defines the top-level Click group. Global flags: ``--traceback``,
``--profile`` and ``--set``.

Contents:
    * :func:`cli` - Root command group with global options.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import rich_click as click
from lib_layered_config import Config

from ... import __init__conf__
from ..config.overrides import apply_overrides
from .constants import CLICK_CONTEXT_SETTINGS
from .context import apply_traceback_preferences, store_cli_context

if TYPE_CHECKING:
    from ...composition import AppServices


def _load_config(services: AppServices, profile: str | None, set_overrides: tuple[str, ...]) -> Config:
    """Load the layered config for ``profile`` and apply ``--set`` overrides.

    Raises:
        click.UsageError: When the profile name or an override is malformed.
    """
    try:
        config = services.get_config(profile=profile)
        return apply_overrides(config, set_overrides)
    except (ValueError, TypeError) as exc:
        raise click.UsageError(str(exc)) from exc


@click.group(
    help=__init__conf__.title,
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=True,
)
@click.version_option(
    version=__init__conf__.version,
    prog_name=__init__conf__.shell_command,
    message=f"{__init__conf__.shell_command} version {__init__conf__.version}",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option(
    "--profile",
    type=str,
    default=None,
    help="Load configuration from a named profile (e.g., 'production', 'test')",
)
@click.option(
    "--set",
    "set_overrides",
    multiple=True,
    default=(),
    metavar="SECTION.KEY=VALUE",
    help="Override a configuration setting (repeatable), e.g. mailer.smtp_host=smtp.example.com",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool, profile: str | None, set_overrides: tuple[str, ...]) -> None:
    """Load configuration once, initialise logging and share both with subcommands.

    ``ctx.obj`` arrives as a services factory (production or testing) and
    leaves as a :class:`~mailcraft.adapters.cli.context.CLIContext`.

    Example:
        >>> from click.testing import CliRunner
        >>> from mailcraft.composition import build_testing
        >>> result = CliRunner().invoke(cli, ["--help"], obj=build_testing)
        >>> result.exit_code
        0
    """
    if not callable(ctx.obj):
        raise RuntimeError("Services factory not provided. Pass build_production or build_testing as obj.")
    services: AppServices = ctx.obj()  # type: ignore[assignment]  # Click's obj is typed as Any
    config = _load_config(services, profile, set_overrides)
    services.init_logging(config)
    store_cli_context(
        ctx,
        traceback=traceback,
        config=config,
        services=services,
        profile=profile,
        set_overrides=set_overrides,
    )
    apply_traceback_preferences(traceback)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Commands import from package ancestors, so they register after ``cli`` exists.
def _register_commands() -> None:
    from .commands import cli_config, cli_info, cli_send_email, cli_session, cli_test_connection

    for cmd in (cli_info, cli_config, cli_session, cli_test_connection, cli_send_email):
        cli.add_command(cmd)


_register_commands()


__all__ = ["cli"]
