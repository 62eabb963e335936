"""Supported protocol + security combinations and their property-key tables.

Each :class:`TransportStrategy` variant is paired with a static
:class:`PropertyKeys` table naming the concrete session property for every
logical setting. Settings a variant does not support map to ``None``.

The opportunistic-TLS default per variant is process-wide and read-mostly:
:func:`opportunistic_tls_defaults` returns a snapshot that the mailer builder
passes into the mapping engine, so a change made while a session is being
built never leaks into it halfway.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Final


class TransportStrategy(str, Enum):
    """Protocol + security combination used to reach the SMTP server.

    Attributes:
        SMTP: Plain SMTP, upgraded with STARTTLS when the server offers it and
            opportunistic TLS is on.
        SMTP_TLS: SMTP with mandatory STARTTLS.
        SMTPS: SMTP over implicit TLS from connection start.

    Example:
        >>> TransportStrategy.SMTPS.protocol
        'smtps'
        >>> TransportStrategy("SMTP_TLS").keys.host
        'mail.smtp.host'
    """

    SMTP = "SMTP"
    SMTP_TLS = "SMTP_TLS"
    SMTPS = "SMTPS"

    @property
    def protocol(self) -> str:
        return _PROTOCOLS[self]

    @property
    def keys(self) -> PropertyKeys:
        return _TEMPLATES[self]

    @property
    def default_port(self) -> int:
        return 465 if self is TransportStrategy.SMTPS else 25

    @property
    def supports_proxy(self) -> bool:
        return self.keys.socks_host is not None


@dataclass(frozen=True, slots=True)
class PropertyKeys:
    """Concrete session property keys for one transport strategy."""

    host: str
    port: str
    username: str
    auth: str
    timeout: str
    connection_timeout: str
    write_timeout: str
    starttls_enable: str | None
    starttls_required: str | None
    ssl_trust: str | None
    ssl_checkserveridentity: str | None
    socks_host: str | None
    socks_port: str | None
    quitwait: str | None


#: Key naming the transport protocol, shared by all variants.
TRANSPORT_PROTOCOL_KEY: Final[str] = "mail.transport.protocol"

#: Generic debug switch, independent of the variant.
DEBUG_KEY: Final[str] = "mail.debug"


def _keys(prefix: str, *, starttls: bool, socks: bool, quitwait: bool) -> PropertyKeys:
    return PropertyKeys(
        host=f"{prefix}.host",
        port=f"{prefix}.port",
        username=f"{prefix}.username",
        auth=f"{prefix}.auth",
        timeout=f"{prefix}.timeout",
        connection_timeout=f"{prefix}.connectiontimeout",
        write_timeout=f"{prefix}.writetimeout",
        starttls_enable=f"{prefix}.starttls.enable" if starttls else None,
        starttls_required=f"{prefix}.starttls.required" if starttls else None,
        ssl_trust=f"{prefix}.ssl.trust",
        ssl_checkserveridentity=f"{prefix}.ssl.checkserveridentity",
        socks_host=f"{prefix}.socks.host" if socks else None,
        socks_port=f"{prefix}.socks.port" if socks else None,
        quitwait=f"{prefix}.quitwait" if quitwait else None,
    )


_PROTOCOLS: Final[Mapping[TransportStrategy, str]] = MappingProxyType(
    {
        TransportStrategy.SMTP: "smtp",
        TransportStrategy.SMTP_TLS: "smtp",
        TransportStrategy.SMTPS: "smtps",
    }
)

_TEMPLATES: Final[Mapping[TransportStrategy, PropertyKeys]] = MappingProxyType(
    {
        TransportStrategy.SMTP: _keys("mail.smtp", starttls=True, socks=True, quitwait=False),
        TransportStrategy.SMTP_TLS: _keys("mail.smtp", starttls=True, socks=True, quitwait=False),
        TransportStrategy.SMTPS: _keys("mail.smtps", starttls=False, socks=False, quitwait=True),
    }
)

_OPPORTUNISTIC_TLS_DEFAULTS: dict[TransportStrategy, bool] = {
    TransportStrategy.SMTP: True,
    TransportStrategy.SMTP_TLS: True,
    TransportStrategy.SMTPS: False,
}


def set_opportunistic_tls_default(strategy: TransportStrategy, enabled: bool) -> None:
    """Change the process-wide opportunistic-TLS default for ``strategy``.

    Not synchronised: change it at start-up, not while mailers are being built.
    Loaded configuration and per-mailer settings still take precedence.
    """
    _OPPORTUNISTIC_TLS_DEFAULTS[TransportStrategy(strategy)] = bool(enabled)


def opportunistic_tls_defaults() -> Mapping[TransportStrategy, bool]:
    """Return a read-only snapshot of the per-strategy defaults."""
    return MappingProxyType(dict(_OPPORTUNISTIC_TLS_DEFAULTS))


def reset_opportunistic_tls_defaults() -> None:
    """Restore the built-in defaults (on for SMTP and SMTP_TLS)."""
    _OPPORTUNISTIC_TLS_DEFAULTS.update(
        {TransportStrategy.SMTP: True, TransportStrategy.SMTP_TLS: True, TransportStrategy.SMTPS: False}
    )


__all__ = [
    "DEBUG_KEY",
    "TRANSPORT_PROTOCOL_KEY",
    "PropertyKeys",
    "TransportStrategy",
    "opportunistic_tls_defaults",
    "reset_opportunistic_tls_defaults",
    "set_opportunistic_tls_default",
]
