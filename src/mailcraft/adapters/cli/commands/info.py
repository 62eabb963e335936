"""Package metadata CLI command.

Contents:
    * :func:`cli_info` - Display package metadata and the default config path.
"""

from __future__ import annotations

import logging

import lib_log_rich.runtime
import orjson
import rich_click as click

from .... import __init__conf__
from ....domain.enums import OutputFormat
from ...config.loader import get_default_config_path
from ..constants import CLICK_CONTEXT_SETTINGS

logger = logging.getLogger(__name__)


def _metadata() -> dict[str, str]:
    return {
        "name": __init__conf__.name,
        "title": __init__conf__.title,
        "version": __init__conf__.version,
        "homepage": __init__conf__.homepage,
        "author": __init__conf__.author,
        "shell_command": __init__conf__.shell_command,
        "default_config": str(get_default_config_path()),
    }


@click.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--format",
    "output_format",
    type=click.Choice([f.value for f in OutputFormat], case_sensitive=False),
    default=OutputFormat.HUMAN.value,
    help="Output format (human-readable or JSON)",
)
def cli_info(output_format: str) -> None:
    """Print resolved metadata so users can inspect installation details.

    Example:
        >>> from click.testing import CliRunner
        >>> result = CliRunner().invoke(cli_info, ["--format", "json"])
        >>> '"name":"mailcraft"' in result.output
        True
    """
    fmt = OutputFormat(output_format.lower())
    with lib_log_rich.runtime.bind(job_id="cli-info", extra={"command": "info", "format": fmt.value}):
        logger.info("Displaying package information")
        if fmt is OutputFormat.JSON:
            click.echo(orjson.dumps(_metadata()).decode())
            return
        __init__conf__.print_info()
        click.echo(f"    default_config = {get_default_config_path()}")


__all__ = ["cli_info"]
