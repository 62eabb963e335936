"""Mail adapters: configuration models, MIME codec, SMTP transport, proxy bridge.

Contents:
    * :mod:`.config` - MailerConfig / EmailDefaultsConfig models and loaders
    * :mod:`.converter` - Email <-> MIME message codec
    * :mod:`.transport` - smtplib-based transport client
    * :mod:`.proxy_bridge` - Local authenticating SOCKS5 bridge
    * :mod:`.socks` - SOCKS5 protocol helpers
    * :mod:`.validation` - Address syntax checks for untrusted input
"""

from __future__ import annotations

from .config import EmailDefaultsConfig, MailerConfig, load_email_defaults_from_dict, load_mailer_config_from_dict
from .converter import (
    copying_message,
    email_to_eml,
    email_to_message,
    eml_to_email,
    forwarding_message,
    message_to_email,
    replying_to_message,
)
from .proxy_bridge import Socks5Bridge, start_proxy_bridge
from .transport import deliver_message, probe_connection, sanitize_exception_message
from .validation import validate_address, validate_email_addresses

__all__ = [
    "EmailDefaultsConfig",
    "MailerConfig",
    "Socks5Bridge",
    "copying_message",
    "deliver_message",
    "email_to_eml",
    "email_to_message",
    "eml_to_email",
    "forwarding_message",
    "load_email_defaults_from_dict",
    "load_mailer_config_from_dict",
    "message_to_email",
    "probe_connection",
    "replying_to_message",
    "sanitize_exception_message",
    "start_proxy_bridge",
    "validate_address",
    "validate_email_addresses",
]
