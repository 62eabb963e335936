"""Domain error types: instantiation, message preservation and hierarchy."""

from __future__ import annotations

import pytest

from mailcraft.adapters.mail.socks import SocksError
from mailcraft.domain.errors import (
    ConfigurationError,
    EmailValidationError,
    InvalidRecipientError,
)


@pytest.mark.os_agnostic
def test_configuration_error_preserves_message() -> None:
    """Instantiation stores the message for display."""
    exc = ConfigurationError("No SMTP host configured")
    assert str(exc) == "No SMTP host configured"


@pytest.mark.os_agnostic
def test_configuration_error_is_not_a_value_error() -> None:
    """CLI error mapping tells configuration problems apart from bad input."""
    assert not issubclass(ConfigurationError, ValueError)


@pytest.mark.os_agnostic
def test_email_validation_error_is_value_error() -> None:
    """Generic ``except ValueError`` handlers keep working."""
    with pytest.raises(ValueError, match="no sender"):
        raise EmailValidationError("email has no sender (from address)")


@pytest.mark.os_agnostic
def test_invalid_recipient_error_is_an_email_validation_error() -> None:
    """Address failures are a kind of validation failure."""
    exc = InvalidRecipientError("Invalid to address: broken")

    assert isinstance(exc, EmailValidationError)
    assert str(exc) == "Invalid to address: broken"


@pytest.mark.os_agnostic
def test_socks_error_is_os_error() -> None:
    """Proxy failures are caught with connection failures."""
    assert issubclass(SocksError, OSError)
