"""Mailer use case: settings resolution, session creation and delivery.

:class:`MailerBuilder` layers explicitly set values over the loaded
``[mailer]`` configuration over built-in defaults, hands the result to the
session mapping engine and returns a :class:`Mailer`.

:class:`Mailer` validates an email, converts it to a wire message, runs the
proxy bridge when the session plan asks for one, and delegates to the
transport port. The bridge is stopped on every exit path; a failure to stop
it is logged and never masks the transport outcome.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from types import TracebackType
from typing import TYPE_CHECKING, Any

from ..domain.email import Email, SendResult
from ..domain.errors import ConfigurationError, EmailValidationError
from ..domain.recipient import Recipient
from ..domain.session import (
    DEFAULT_PROXY_BRIDGE_PORT,
    DEFAULT_SESSION_TIMEOUT_MS,
    BridgeRequest,
    ProxyConfig,
    ServerConfig,
    Session,
    build_session,
    resolve_opportunistic_tls,
)
from ..domain.transport_strategy import TransportStrategy, opportunistic_tls_defaults
from .ports import ConvertEmail, DeliverMessage, ProbeConnection, StartProxyBridge

if TYPE_CHECKING:
    from ..adapters.mail.config import MailerConfig

logger = logging.getLogger(__name__)

_LINE_BREAKS = ("\r", "\n")


@dataclass(frozen=True, slots=True)
class MailerPorts:
    """Collaborators a mailer delegates to."""

    convert: ConvertEmail
    deliver: DeliverMessage
    probe: ProbeConnection
    start_bridge: StartProxyBridge


def _check_line_breaks(field_name: str, value: str | None) -> None:
    if value is not None and any(char in value for char in _LINE_BREAKS):
        raise EmailValidationError(f"{field_name} must not contain line breaks: {value!r}")


def _check_recipient(field_name: str, recipient: Recipient | None) -> None:
    if recipient is None:
        return
    _check_line_breaks(f"{field_name} name", recipient.name)
    _check_line_breaks(f"{field_name} address", recipient.address)


def validate_email(email: Email) -> Recipient:
    """Check that ``email`` is complete and free of header injection.

    Returns:
        The envelope sender: the bounce-to recipient, else the from recipient.

    Raises:
        EmailValidationError: When the sender or every recipient is missing,
            or a header-bound value contains CR or LF.

    Example:
        >>> from mailcraft.domain.builder import EmailBuilder
        >>> email = EmailBuilder.starting_blank().to("a@example.com").build_email()
        >>> validate_email(email)  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ...
        EmailValidationError: email has no sender (from address)
    """
    sender = email.from_recipient
    if sender is None:
        raise EmailValidationError("email has no sender (from address)")
    if not email.recipients:
        raise EmailValidationError("email has no recipients (to, cc or bcc)")

    _check_line_breaks("subject", email.subject)
    _check_recipient("from", sender)
    _check_recipient("reply-to", email.reply_to_recipient)
    _check_recipient("bounce-to", email.bounce_to_recipient)
    _check_recipient("disposition-notification-to", email.disposition_notification_to)
    _check_recipient("return-receipt-to", email.return_receipt_to)
    for recipient in email.recipients:
        _check_recipient(recipient.type.value if recipient.type else "recipient", recipient)
    for name, value in email.headers.items():
        _check_line_breaks("header name", name)
        _check_line_breaks(f"header {name}", value)
    for resource in (*email.attachments, *email.embedded_images):
        _check_line_breaks("attachment name", resource.name)
    return email.bounce_to_recipient or sender


class Mailer:
    """Sends emails over one immutable session.

    Instances are safe to share between threads. Sends that need a proxy
    bridge are serialised, since the bridge listens on a fixed local port.
    """

    def __init__(
        self,
        *,
        session: Session,
        ports: MailerPorts,
        password: str | None = None,
        bridge: BridgeRequest | None = None,
    ) -> None:
        self._session = session
        self._ports = ports
        self._password = password
        self._bridge = bridge
        self._bridge_lock = threading.Lock()
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def proxy_bridge(self) -> BridgeRequest | None:
        """Bridge the mailer runs around each send, or None for direct connections."""
        return self._bridge

    def validate(self, email: Email) -> None:
        """Raise :class:`EmailValidationError` when ``email`` cannot be sent."""
        validate_email(email)

    @contextmanager
    def _bridge_scope(self) -> Iterator[None]:
        if self._bridge is None:
            yield
            return
        with self._bridge_lock:
            running = self._ports.start_bridge(self._bridge)
            try:
                yield
            finally:
                try:
                    running.stop()
                except Exception:
                    logger.warning(
                        "Failed to stop proxy bridge",
                        extra={"listen_port": self._bridge.listen_port},
                        exc_info=True,
                    )

    def send_mail(self, email: Email) -> SendResult:
        """Validate, convert and deliver ``email``; block until done.

        Returns:
            The sent email carrying the ``Message-ID`` used on the wire.

        Raises:
            EmailValidationError: When the email is incomplete.
            smtplib.SMTPException: On protocol failure, unchanged.
            OSError: On connection failure, unchanged.
        """
        sender = validate_email(email)
        message = self._ports.convert(email)
        message_id = str(message["Message-ID"])
        envelope_recipients = [recipient.address for recipient in email.recipients]

        logger.info(
            "Sending email",
            extra={
                "message_id": message_id,
                "envelope_from": sender.address,
                "recipients": envelope_recipients,
                "subject": email.subject,
                "via_bridge": self._bridge is not None,
            },
        )
        with self._bridge_scope():
            self._ports.deliver(
                message,
                session=self._session,
                password=self._password,
                envelope_from=sender.address,
                envelope_recipients=envelope_recipients,
            )
        logger.info("Email sent", extra={"message_id": message_id})
        return SendResult(email=email.with_assigned_id(message_id), message_id=message_id)

    def send_mail_async(self, email: Email) -> Future[SendResult]:
        """Send ``email`` on the mailer's worker thread.

        Validation runs immediately in the caller's thread; conversion and
        delivery run on the worker and surface through the returned future.
        """
        self.validate(email)
        return self._worker().submit(self.send_mail, email)

    def test_connection(self) -> None:
        """Open and close a connection to the server, raising on failure."""
        with self._bridge_scope():
            self._ports.probe(session=self._session, password=self._password)

    def _worker(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mailcraft-mailer")
            return self._executor

    def close(self) -> None:
        """Wait for queued asynchronous sends and stop the worker thread."""
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def __enter__(self) -> Mailer:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Mailer(protocol={self._session.protocol!r}, bridge={self._bridge!r})"


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


class MailerBuilder:
    """Collects mailer settings; explicit values beat loaded configuration.

    Example:
        >>> from mailcraft.composition import build_testing
        >>> mailer = (
        ...     build_testing().mailer_builder()
        ...     .with_smtp_server("smtp.example.com", 587, "user", "secret")
        ...     .with_transport_strategy(TransportStrategy.SMTP_TLS)
        ...     .build_mailer()
        ... )
        >>> mailer.session.get("mail.smtp.auth")
        'true'
    """

    def __init__(self, ports: MailerPorts, config: MailerConfig | None = None) -> None:
        self._ports = ports
        self._config = config
        self._host: str | None = None
        self._port: int | None = None
        self._username: str | None = None
        self._password: str | None = None
        self._strategy: TransportStrategy | None = None
        self._proxy_host: str | None = None
        self._proxy_port: int | None = None
        self._proxy_username: str | None = None
        self._proxy_password: str | None = None
        self._proxy_bridge_port: int | None = None
        self._use_configured_proxy = True
        self._properties: dict[str, str] = {}
        self._debug: bool | None = None
        self._opportunistic_tls: bool | None = None
        self._session_timeout_ms: int | None = None
        self._session: Session | None = None

    # ------------------------------------------------------------------ server

    def with_smtp_server(
        self,
        host: str,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
    ) -> MailerBuilder:
        self._host = host or None
        self._port = port
        self._username = username or None
        self._password = password
        return self

    def with_smtp_server_host(self, host: str) -> MailerBuilder:
        self._host = host or None
        return self

    def with_smtp_server_port(self, port: int) -> MailerBuilder:
        self._port = port
        return self

    def with_smtp_server_username(self, username: str) -> MailerBuilder:
        self._username = username or None
        return self

    def with_smtp_server_password(self, password: str) -> MailerBuilder:
        self._password = password
        return self

    def with_transport_strategy(self, strategy: TransportStrategy | str) -> MailerBuilder:
        self._strategy = TransportStrategy(strategy)
        return self

    # ------------------------------------------------------------------- proxy

    def with_proxy(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
    ) -> MailerBuilder:
        self._use_configured_proxy = True
        self._proxy_host = host or None
        self._proxy_port = port
        self._proxy_username = username or None
        self._proxy_password = password
        return self

    def with_proxy_host(self, host: str) -> MailerBuilder:
        self._proxy_host = host or None
        return self

    def with_proxy_port(self, port: int) -> MailerBuilder:
        self._proxy_port = port
        return self

    def with_proxy_username(self, username: str) -> MailerBuilder:
        self._proxy_username = username or None
        return self

    def with_proxy_password(self, password: str) -> MailerBuilder:
        self._proxy_password = password
        return self

    def with_proxy_bridge_port(self, port: int) -> MailerBuilder:
        """Local port for the authenticating bridge; only used with proxy credentials."""
        self._proxy_bridge_port = port
        return self

    def clear_proxy(self) -> MailerBuilder:
        """Drop every proxy setting, including those from loaded configuration."""
        self._proxy_host = self._proxy_port = None
        self._proxy_username = self._proxy_password = None
        self._proxy_bridge_port = None
        self._use_configured_proxy = False
        return self

    # ------------------------------------------------------------------ session

    def with_property(self, key: str, value: object) -> MailerBuilder:
        """Set a raw session property; it overrides every computed value."""
        self._properties[str(key)] = str(value)
        return self

    def with_properties(self, properties: Mapping[str, object]) -> MailerBuilder:
        for key, value in properties.items():
            self.with_property(key, value)
        return self

    def with_debug_logging(self, debug: bool) -> MailerBuilder:
        self._debug = debug
        return self

    def with_opportunistic_tls(self, enabled: bool) -> MailerBuilder:
        self._opportunistic_tls = enabled
        return self

    def with_session_timeout(self, milliseconds: int) -> MailerBuilder:
        if milliseconds <= 0:
            raise ValueError(f"session timeout must be positive, got {milliseconds}")
        self._session_timeout_ms = milliseconds
        return self

    def using_session(self, session: Session | Mapping[str, object]) -> MailerBuilder:
        """Use a ready-made session; the mapping engine is skipped entirely."""
        self._session = session if isinstance(session, Session) else Session.from_properties(session)
        return self

    # ----------------------------------------------------------------- terminal

    def _resolve_proxy(self, configured: Any) -> ProxyConfig | None:
        use_config = self._use_configured_proxy and configured is not None
        host = _first(self._proxy_host, configured.proxy_host if use_config else None)
        port = _first(self._proxy_port, configured.proxy_port if use_config else None)
        if not host or port is None:
            return None
        return ProxyConfig(
            host=host,
            port=port,
            username=_first(self._proxy_username, configured.proxy_username if use_config else None),
            password=_first(self._proxy_password, configured.proxy_password if use_config else None),
            bridge_port=_first(
                self._proxy_bridge_port,
                configured.proxy_bridge_port if use_config else None,
                DEFAULT_PROXY_BRIDGE_PORT,
            ),
        )

    def build_mailer(self) -> Mailer:
        """Resolve every setting and return a ready :class:`Mailer`.

        Raises:
            ConfigurationError: When neither the builder nor the loaded
                configuration names an SMTP host.
        """
        configured = self._config
        password = _first(self._password, configured.smtp_password if configured else None)

        if self._session is not None:
            logger.debug("Building mailer from a supplied session", extra={"protocol": self._session.protocol})
            return Mailer(session=self._session, ports=self._ports, password=password)

        host = _first(self._host, configured.smtp_host if configured else None)
        if not host:
            raise ConfigurationError("No SMTP host configured (set it on the builder or in [mailer].smtp_host)")
        strategy = _first(
            self._strategy, configured.transport_strategy if configured else None, TransportStrategy.SMTP
        )
        server = ServerConfig(
            host=host,
            port=_first(self._port, configured.smtp_port if configured else None, strategy.default_port),
            username=_first(self._username, configured.smtp_username if configured else None),
            password=password,
        )
        proxy = self._resolve_proxy(configured)
        if proxy is not None and not strategy.supports_proxy:
            logger.debug("Proxy settings ignored for transport strategy", extra={"strategy": strategy.value})

        properties: dict[str, str] = dict(configured.properties) if configured else {}
        properties.update(self._properties)

        plan = build_session(
            server,
            strategy,
            proxy=proxy,
            debug=bool(_first(self._debug, configured.debug if configured else None, False)),
            opportunistic_tls=resolve_opportunistic_tls(
                strategy,
                explicit=self._opportunistic_tls,
                configured=configured.opportunistic_tls if configured else None,
                defaults=opportunistic_tls_defaults(),
            ),
            session_timeout_ms=_first(
                self._session_timeout_ms,
                configured.session_timeout_ms if configured else None,
                DEFAULT_SESSION_TIMEOUT_MS,
            ),
            extra_properties=properties,
        )
        logger.debug(
            "Built mailer",
            extra={
                "strategy": strategy.value,
                "host": server.host,
                "port": server.port,
                "proxy_bridge": plan.bridge.listen_port if plan.bridge else None,
            },
        )
        return Mailer(session=plan.session, ports=self._ports, password=password, bridge=plan.bridge)


__all__ = [
    "Mailer",
    "MailerBuilder",
    "MailerPorts",
    "validate_email",
]
