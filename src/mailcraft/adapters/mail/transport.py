"""SMTP transport client driven by session properties.

Provides :func:`deliver_message` and :func:`probe_connection`, which read
everything they need (protocol, host, TLS behaviour, SOCKS proxy, timeouts,
credentials' username) from a :class:`~mailcraft.domain.session.Session`.
Only the password travels separately.

Transport errors (``smtplib.SMTPException``, ``OSError``) propagate
unchanged.
"""

from __future__ import annotations

import logging
import smtplib
import socket
import ssl
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage

from ...domain.session import Session
from ...domain.transport_strategy import TransportStrategy
from . import socks

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_MS = 60_000

# Keywords that may indicate sensitive data in exception messages
_SENSITIVE_KEYWORDS = frozenset(
    {
        "password",
        "credential",
        "auth",
        "secret",
        "token",
        "key",
        "login",
    }
)


def sanitize_exception_message(exc: BaseException) -> str:
    """Sanitize exception message to prevent credential exposure.

    Returns a generic message when the original exception text contains
    keywords suggesting sensitive data (passwords, credentials, tokens).

    Example:
        >>> class FakeExc(Exception): pass
        >>> sanitize_exception_message(FakeExc("Connection refused"))
        'Connection refused'
        >>> sanitize_exception_message(FakeExc("Auth password rejected"))
        'Email delivery failed. Check SMTP configuration.'
    """
    message = str(exc).lower()
    if any(keyword in message for keyword in _SENSITIVE_KEYWORDS):
        return "Email delivery failed. Check SMTP configuration."
    return str(exc)


def _flag(session: Session, key: str | None, default: bool = False) -> bool:
    if key is None:
        return default
    value = session.get(key)
    return default if value is None else value.strip().lower() == "true"


def _seconds(session: Session, key: str) -> float:
    value = session.get(key)
    try:
        return int(value if value is not None else _DEFAULT_TIMEOUT_MS) / 1000
    except ValueError:
        return _DEFAULT_TIMEOUT_MS / 1000


@dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """Connection parameters read back from session properties.

    Example:
        >>> from mailcraft.domain.session import Session
        >>> settings = ConnectionSettings.from_session(
        ...     Session.from_properties({"mail.transport.protocol": "smtps", "mail.smtps.host": "smtp.example.com"})
        ... )
        >>> settings.implicit_tls, settings.port
        (True, 465)
    """

    host: str
    port: int
    implicit_tls: bool
    starttls_enable: bool
    starttls_required: bool
    trusted_hosts: tuple[str, ...]
    check_server_identity: bool
    username: str | None
    auth: bool
    proxy: tuple[str, int] | None
    connect_timeout: float
    read_timeout: float
    quit_wait: bool
    local_hostname: str | None
    debug: bool

    @classmethod
    def from_session(cls, session: Session) -> ConnectionSettings:
        strategy = TransportStrategy.SMTPS if session.protocol == "smtps" else TransportStrategy.SMTP
        keys = strategy.keys
        prefix = keys.host.rsplit(".", 1)[0]
        host = session.get(keys.host)
        if not host:
            raise ValueError(f"session has no {keys.host} property")

        proxy: tuple[str, int] | None = None
        socks_host = session.get(keys.socks_host) if keys.socks_host else None
        socks_port = session.get(keys.socks_port) if keys.socks_port else None
        if socks_host and socks_port:
            proxy = (socks_host, int(socks_port))

        return cls(
            host=host,
            port=int(session.get(keys.port) or strategy.default_port),
            implicit_tls=strategy is TransportStrategy.SMTPS,
            starttls_enable=_flag(session, keys.starttls_enable),
            starttls_required=_flag(session, keys.starttls_required),
            trusted_hosts=tuple((session.get(keys.ssl_trust or "") or "").split()),
            check_server_identity=_flag(session, keys.ssl_checkserveridentity, default=True),
            username=session.get(keys.username) or None,
            auth=_flag(session, keys.auth),
            proxy=proxy,
            connect_timeout=_seconds(session, keys.connection_timeout),
            read_timeout=_seconds(session, keys.timeout),
            quit_wait=_flag(session, keys.quitwait, default=True),
            local_hostname=session.get(f"{prefix}.localhost") or None,
            debug=session.debug,
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Build the TLS context; trusted hosts skip certificate verification."""
        context = ssl.create_default_context()
        if "*" in self.trusted_hosts or self.host in self.trusted_hosts:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        elif not self.check_server_identity:
            context.check_hostname = False
        return context


class ProxiedSMTP(smtplib.SMTP):
    """``smtplib.SMTP`` that opens its socket through a SOCKS5 proxy."""

    def __init__(self, *, proxy: tuple[str, int], **kwargs: object) -> None:
        self._proxy = proxy
        super().__init__(**kwargs)  # type: ignore[arg-type]

    def _get_socket(self, host: str, port: int, timeout: float) -> socket.socket:  # type: ignore[override]
        if self.debuglevel > 0:
            self._print_debug("connect via SOCKS5 proxy:", self._proxy, (host, port))  # type: ignore[attr-defined]
        return socks.open_connection(
            self._proxy, (host, port), timeout=timeout, source_address=self.source_address
        )


def _open(settings: ConnectionSettings) -> smtplib.SMTP:
    common = {"local_hostname": settings.local_hostname, "timeout": settings.connect_timeout}
    if settings.implicit_tls:
        client: smtplib.SMTP = smtplib.SMTP_SSL(context=settings.ssl_context(), **common)  # type: ignore[arg-type]
    elif settings.proxy is not None:
        client = ProxiedSMTP(proxy=settings.proxy, **common)
    else:
        client = smtplib.SMTP(**common)  # type: ignore[arg-type]
    if settings.debug:
        client.set_debuglevel(1)
    client.connect(settings.host, settings.port)
    if client.sock is not None:
        client.sock.settimeout(settings.read_timeout)
    return client


def _secure_and_login(client: smtplib.SMTP, settings: ConnectionSettings, password: str | None) -> None:
    client.ehlo_or_helo_if_needed()
    if not settings.implicit_tls and settings.starttls_enable:
        if client.has_extn("starttls"):
            client.starttls(context=settings.ssl_context())
            client.ehlo()
        elif settings.starttls_required:
            raise smtplib.SMTPNotSupportedError("STARTTLS is required but not offered by the server")
    if settings.auth and settings.username and password is not None:
        client.login(settings.username, password)


def _close(client: smtplib.SMTP, settings: ConnectionSettings) -> None:
    if not settings.quit_wait:
        client.close()
        return
    try:
        client.quit()
    except smtplib.SMTPServerDisconnected:
        client.close()


@contextmanager
def smtp_connection(session: Session, password: str | None) -> Iterator[smtplib.SMTP]:
    """Yield a connected, secured and authenticated SMTP client for ``session``."""
    settings = ConnectionSettings.from_session(session)
    logger.debug(
        "Opening SMTP connection",
        extra={
            "host": settings.host,
            "port": settings.port,
            "implicit_tls": settings.implicit_tls,
            "proxy": f"{settings.proxy[0]}:{settings.proxy[1]}" if settings.proxy else None,
        },
    )
    client = _open(settings)
    try:
        _secure_and_login(client, settings, password)
        yield client
    except BaseException:
        client.close()
        raise
    _close(client, settings)


def deliver_message(
    message: EmailMessage,
    *,
    session: Session,
    password: str | None,
    envelope_from: str,
    envelope_recipients: Sequence[str],
) -> None:
    """Send ``message`` to ``envelope_recipients`` over the session's connection.

    Raises:
        smtplib.SMTPRecipientsRefused: When every recipient was refused.
        smtplib.SMTPException: On any other protocol failure.
        OSError: On connection or proxy failure.
    """
    with smtp_connection(session, password) as client:
        refused = client.send_message(message, from_addr=envelope_from, to_addrs=list(envelope_recipients))
    if refused:
        logger.warning(
            "Some recipients were refused",
            extra={"refused": sorted(refused), "message_id": message.get("Message-ID")},
        )
    logger.info(
        "Message delivered",
        extra={"message_id": message.get("Message-ID"), "recipients": list(envelope_recipients)},
    )


def probe_connection(*, session: Session, password: str | None) -> None:
    """Open, secure, authenticate and close a connection; raise on any failure."""
    with smtp_connection(session, password) as client:
        client.noop()
    logger.info("SMTP connection test succeeded", extra={"protocol": session.protocol})


__all__ = [
    "ConnectionSettings",
    "ProxiedSMTP",
    "deliver_message",
    "probe_connection",
    "sanitize_exception_message",
    "smtp_connection",
]
