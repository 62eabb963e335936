"""Domain layer - pure business logic with no I/O or framework dependencies.

Contents:
    * :mod:`.recipient` - Recipient and attachment value types
    * :mod:`.email` - Immutable email aggregate and send result
    * :mod:`.builder` - Fluent email builder and reply/forward derivation
    * :mod:`.transport_strategy` - Transport variants and property-key tables
    * :mod:`.session` - Session property mapping engine
    * :mod:`.enums` - Domain enumerations
    * :mod:`.errors` - Domain exception types
"""

from __future__ import annotations

from .builder import DEFAULT_QUOTING_MARKUP, EmailBuilder, EmailDefaults, EmailPopulatingBuilder
from .email import Email, SendResult
from .enums import CalendarMethod, OutputFormat, RecipientType
from .errors import ConfigurationError, EmailValidationError, InvalidRecipientError
from .recipient import DEFAULT_MIME_TYPE, AttachmentResource, BytesDataSource, DataSource, FileDataSource, Recipient
from .session import (
    DEFAULT_PROXY_BRIDGE_PORT,
    DEFAULT_SESSION_TIMEOUT_MS,
    BridgeRequest,
    ProxyConfig,
    ServerConfig,
    Session,
    SessionPlan,
    build_session,
    resolve_opportunistic_tls,
)
from .transport_strategy import (
    DEBUG_KEY,
    TRANSPORT_PROTOCOL_KEY,
    PropertyKeys,
    TransportStrategy,
    opportunistic_tls_defaults,
    reset_opportunistic_tls_defaults,
    set_opportunistic_tls_default,
)

__all__ = [
    # Values
    "DEFAULT_MIME_TYPE",
    "AttachmentResource",
    "BytesDataSource",
    "DataSource",
    "FileDataSource",
    "Recipient",
    # Email
    "DEFAULT_QUOTING_MARKUP",
    "Email",
    "EmailBuilder",
    "EmailDefaults",
    "EmailPopulatingBuilder",
    "SendResult",
    # Transport
    "DEBUG_KEY",
    "DEFAULT_PROXY_BRIDGE_PORT",
    "DEFAULT_SESSION_TIMEOUT_MS",
    "TRANSPORT_PROTOCOL_KEY",
    "BridgeRequest",
    "PropertyKeys",
    "ProxyConfig",
    "ServerConfig",
    "Session",
    "SessionPlan",
    "TransportStrategy",
    "build_session",
    "opportunistic_tls_defaults",
    "reset_opportunistic_tls_defaults",
    "resolve_opportunistic_tls",
    "set_opportunistic_tls_default",
    # Enums
    "CalendarMethod",
    "OutputFormat",
    "RecipientType",
    # Errors
    "ConfigurationError",
    "EmailValidationError",
    "InvalidRecipientError",
]
