"""Type-safe domain enums for recipients, calendar invites and output formats."""

from __future__ import annotations

from enum import Enum


class RecipientType(str, Enum):
    """Delivery role of a recipient.

    Inherits from str so values compare directly against header names.

    Example:
        >>> RecipientType.CC.value
        'Cc'
        >>> RecipientType("Bcc") is RecipientType.BCC
        True
    """

    TO = "To"
    CC = "Cc"
    BCC = "Bcc"


class CalendarMethod(str, Enum):
    """iCalendar ``METHOD`` values (RFC 5546) for ``text/calendar`` bodies.

    Example:
        >>> CalendarMethod.REQUEST.value
        'REQUEST'
        >>> CalendarMethod("CANCEL") is CalendarMethod.CANCEL
        True
    """

    PUBLISH = "PUBLISH"
    REQUEST = "REQUEST"
    REPLY = "REPLY"
    ADD = "ADD"
    CANCEL = "CANCEL"
    REFRESH = "REFRESH"
    COUNTER = "COUNTER"
    DECLINECOUNTER = "DECLINECOUNTER"


class OutputFormat(str, Enum):
    """Output format options for configuration and session display.

    Inherits from str to allow direct string comparison and Click integration.

    Example:
        >>> OutputFormat.HUMAN.value
        'human'
        >>> OutputFormat.JSON == "json"
        True
    """

    HUMAN = "human"
    JSON = "json"


__all__ = [
    "CalendarMethod",
    "OutputFormat",
    "RecipientType",
]
