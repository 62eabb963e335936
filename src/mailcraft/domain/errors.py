"""Domain-specific exceptions for typed error handling at boundaries."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Missing, invalid, or incomplete configuration.

    Raised when required configuration values are absent or unusable, for
    example when neither the mailer builder nor the loaded configuration
    provides an SMTP host.

    Example:
        >>> from mailcraft.domain.errors import ConfigurationError
        >>> err = ConfigurationError("No SMTP host configured")
        >>> str(err)
        'No SMTP host configured'
    """


class EmailValidationError(ValueError):
    """Invalid builder input or an incomplete email.

    Raised synchronously at the point of invalid input (a malformed calendar
    pairing, a missing data source) and by the mailer's completeness check.
    Inherits from ValueError so generic ``except ValueError`` handlers keep
    working.

    Example:
        >>> err = EmailValidationError("calendar text requires a calendar method")
        >>> isinstance(err, ValueError)
        True
    """


class InvalidRecipientError(EmailValidationError):
    """Email address validation failure.

    Raised when a recipient address is missing, empty, or fails RFC 5322
    validation.

    Example:
        >>> from mailcraft.domain.errors import InvalidRecipientError
        >>> err = InvalidRecipientError("Invalid email: not-an-email")
        >>> str(err)
        'Invalid email: not-an-email'
        >>> isinstance(err, ValueError)
        True
    """


__all__ = [
    "ConfigurationError",
    "EmailValidationError",
    "InvalidRecipientError",
]
