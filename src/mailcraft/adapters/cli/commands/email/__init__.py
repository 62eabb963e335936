"""Mailer CLI commands.

Contents:
    * :func:`.send_email.cli_send_email` - Build and send an email.
    * :func:`.session.cli_session` - Show the computed session properties.
    * :func:`.session.cli_test_connection` - Probe the configured server.
"""

from __future__ import annotations

from .send_email import cli_send_email
from .session import cli_session, cli_test_connection

__all__ = ["cli_send_email", "cli_session", "cli_test_connection"]
