"""CLI command implementations.

Contents:
    * Info command from :mod:`.info`
    * Config command from :mod:`.config`
    * Mailer commands from :mod:`.email` (subpackage)
"""

from __future__ import annotations

from .config import cli_config
from .email import cli_send_email, cli_session, cli_test_connection
from .info import cli_info

__all__ = [
    "cli_config",
    "cli_info",
    "cli_send_email",
    "cli_session",
    "cli_test_connection",
]
