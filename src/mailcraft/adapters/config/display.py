"""Render configuration and computed session properties.

Configuration display delegates to lib_layered_config's Rich renderer;
session display prints the flat property mapping as a Rich table or JSON.
Pending log output is flushed first so it never interleaves with the
rendered output.
"""

from __future__ import annotations

from collections.abc import Mapping

import lib_log_rich.runtime
import orjson
from lib_layered_config import Config
from lib_layered_config import OutputFormat as LibOutputFormat
from lib_layered_config import display_config as _lib_display
from rich.console import Console
from rich.table import Table

from ...domain.enums import OutputFormat
from ...domain.session import Session

_SECRET_MARKERS = ("password", "secret", "token")
_REDACTED = "[REDACTED]"


def _flush_logs() -> None:
    if lib_log_rich.runtime.is_initialised():
        lib_log_rich.runtime.flush()


def redact(properties: Mapping[str, str]) -> dict[str, str]:
    """Return a sorted copy with secret-looking values replaced.

    Example:
        >>> redact({"mail.smtp.host": "h", "mail.smtp.password": "p"})
        {'mail.smtp.host': 'h', 'mail.smtp.password': '[REDACTED]'}
    """
    return {
        key: _REDACTED if any(marker in key.lower() for marker in _SECRET_MARKERS) else value
        for key, value in sorted(properties.items())
    }


def display_config(
    config: Config,
    *,
    output_format: OutputFormat = OutputFormat.HUMAN,
    section: str | None = None,
    console: Console | None = None,
    profile: str | None = None,
) -> None:
    """Print the merged configuration with provenance comments.

    Raises:
        ValueError: When ``section`` does not exist.
    """
    _flush_logs()
    _lib_display(
        config,
        output_format=LibOutputFormat(output_format.value),
        section=section,
        profile=profile,
        console=console,
    )


def display_session(
    session: Session,
    *,
    output_format: OutputFormat = OutputFormat.HUMAN,
    console: Console | None = None,
) -> None:
    """Print the session properties a mailer would use.

    JSON output is a single object with sorted keys; human output is a
    two-column table.
    """
    _flush_logs()
    target = console if console is not None else Console()
    properties = redact(session.properties)
    if output_format is OutputFormat.JSON:
        target.print_json(orjson.dumps(properties, option=orjson.OPT_SORT_KEYS).decode())
        return
    table = Table(title=f"Session ({session.protocol})", show_header=True, header_style="bold")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in properties.items():
        table.add_row(key, value)
    target.print(table)


__all__ = ["display_config", "display_session", "redact"]
