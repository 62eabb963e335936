"""Exit codes returned by mailcraft commands.

Values follow ``sysexits.h`` and errno where one fits, so scripts can tell a
bad invocation from a broken configuration from an unreachable server.
"""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes raised through ``SystemExit`` by CLI commands.

    * 2: ENOENT, an attachment or embedded file is missing
    * 22: EINVAL, the email or an option value is invalid
    * 69: EX_UNAVAILABLE, the SMTP server or proxy failed
    * 78: EX_CONFIG, the ``[mailer]``/``[email]`` configuration is unusable
    * 110: ETIMEDOUT, the server did not answer in time

    Example:
        >>> int(ExitCode.SMTP_FAILURE)
        69
        >>> ExitCode(78).name
        'CONFIG_ERROR'
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    FILE_NOT_FOUND = 2
    INVALID_ARGUMENT = 22
    SMTP_FAILURE = 69
    CONFIG_ERROR = 78
    TIMEOUT = 110


__all__ = ["ExitCode"]
