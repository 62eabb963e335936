"""Command-line interface.

Contents:
    * :func:`.root.cli` - Root command group
    * :func:`.main.main` - Entry point returning an exit code
    * :class:`.exit_codes.ExitCode` - Exit codes used by the commands
    * Command functions from :mod:`.commands`
"""

from __future__ import annotations

from .commands import cli_config, cli_info, cli_send_email, cli_session, cli_test_connection
from .context import CLIContext, get_cli_context, store_cli_context
from .exit_codes import ExitCode
from .main import main
from .root import cli

__all__ = [
    "CLIContext",
    "ExitCode",
    "cli",
    "cli_config",
    "cli_info",
    "cli_send_email",
    "cli_session",
    "cli_test_connection",
    "get_cli_context",
    "main",
    "store_cli_context",
]
