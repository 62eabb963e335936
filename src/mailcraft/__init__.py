"""Public package surface: email building, mailer configuration and the MIME codec.

Routes imports through the architectural layers:
- Domain exports: emails, recipients, builders, transport strategies, sessions
- Application exports: MailerBuilder and Mailer
- Adapter exports: MIME conversion and configuration loading
- Composition exports: production and testing wiring
"""

from __future__ import annotations

# Metadata
from .__init__conf__ import print_info

# Adapter exports
from .adapters.config.loader import get_config
from .adapters.mail.converter import (
    copying_message,
    email_to_eml,
    email_to_message,
    eml_to_email,
    forwarding_message,
    message_to_email,
    replying_to_message,
)

# Application exports
from .application.mailer import Mailer, MailerBuilder

# Composition exports
from .composition import AppServices, build_production, build_testing

# Domain exports
from .domain import (
    AttachmentResource,
    BytesDataSource,
    CalendarMethod,
    ConfigurationError,
    Email,
    EmailBuilder,
    EmailDefaults,
    EmailPopulatingBuilder,
    EmailValidationError,
    FileDataSource,
    InvalidRecipientError,
    Recipient,
    RecipientType,
    SendResult,
    Session,
    TransportStrategy,
)


def mailer_builder() -> MailerBuilder:
    """Return a MailerBuilder wired to SMTP and seeded with the layered ``[mailer]`` configuration.

    Example:
        >>> builder = mailer_builder()  # doctest: +SKIP
        >>> builder.with_smtp_server("smtp.example.com", 587).build_mailer()  # doctest: +SKIP
        Mailer(protocol='smtp', bridge=None)
    """
    services = build_production()
    return services.mailer_builder(services.get_config().as_dict())


__all__ = [
    "AppServices",
    "AttachmentResource",
    "BytesDataSource",
    "CalendarMethod",
    "ConfigurationError",
    "Email",
    "EmailBuilder",
    "EmailDefaults",
    "EmailPopulatingBuilder",
    "EmailValidationError",
    "FileDataSource",
    "InvalidRecipientError",
    "Mailer",
    "MailerBuilder",
    "Recipient",
    "RecipientType",
    "SendResult",
    "Session",
    "TransportStrategy",
    "build_production",
    "build_testing",
    "copying_message",
    "email_to_eml",
    "email_to_message",
    "eml_to_email",
    "forwarding_message",
    "get_config",
    "mailer_builder",
    "message_to_email",
    "print_info",
    "replying_to_message",
]
