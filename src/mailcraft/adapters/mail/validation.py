"""Address syntax checks for emails assembled from untrusted input.

The domain only insists that addresses are non-empty; command-line input is
additionally checked with ``btx_lib_mail`` before a mailer sees it. Failures
surface as the domain's :class:`InvalidRecipientError` instead of the
library's exception.
"""

from __future__ import annotations

from collections.abc import Iterator

from btx_lib_mail import validate_email_address

from ...domain.email import Email
from ...domain.errors import InvalidRecipientError
from ...domain.recipient import Recipient


def validate_address(address: str, *, role: str = "recipient") -> None:
    """Validate a single email address.

    Raises:
        InvalidRecipientError: When the address is malformed.

    Example:
        >>> validate_address("valid@example.com")
        >>> validate_address("invalid", role="from")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ...
        InvalidRecipientError: Invalid from address: invalid
    """
    try:
        validate_email_address(address)
    except ValueError as exc:
        raise InvalidRecipientError(f"Invalid {role} address: {address}") from exc


def _participants(email: Email) -> Iterator[tuple[str, Recipient]]:
    singles = (
        ("from", email.from_recipient),
        ("reply-to", email.reply_to_recipient),
        ("bounce-to", email.bounce_to_recipient),
        ("disposition-notification-to", email.disposition_notification_to),
        ("return-receipt-to", email.return_receipt_to),
    )
    for role, recipient in singles:
        if recipient is not None:
            yield role, recipient
    for recipient in email.recipients:
        yield (recipient.type.value if recipient.type else "recipient"), recipient


def validate_email_addresses(email: Email) -> None:
    """Validate every address on ``email``, stopping at the first bad one.

    Example:
        >>> from mailcraft.domain.builder import EmailBuilder
        >>> email = EmailBuilder.starting_blank().from_("a@example.com").cc("not-an-address").build_email()
        >>> validate_email_addresses(email)  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ...
        InvalidRecipientError: Invalid Cc address: not-an-address
    """
    for role, recipient in _participants(email):
        validate_address(recipient.address, role=role)


__all__ = ["validate_address", "validate_email_addresses"]
