"""Session property mapping engine.

Turns connection parameters, proxy parameters and a
:class:`~mailcraft.domain.transport_strategy.TransportStrategy` into the flat
string mapping the transport client works from, and decides whether an
authenticating proxy bridge is needed.

Example:
    >>> plan = build_session(
    ...     ServerConfig(host="host", port=25),
    ...     TransportStrategy.SMTP_TLS,
    ...     opportunistic_tls=True,
    ... )
    >>> plan.session.get("mail.smtp.starttls.required")
    'true'
    >>> plan.session.get("mail.smtp.auth") is None
    True
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from .transport_strategy import DEBUG_KEY, TRANSPORT_PROTOCOL_KEY, TransportStrategy

#: Local port the proxy bridge listens on when none is configured.
DEFAULT_PROXY_BRIDGE_PORT: Final[int] = 1080

#: Socket timeouts emitted into every session, in milliseconds.
DEFAULT_SESSION_TIMEOUT_MS: Final[int] = 60_000

_BRIDGE_HOST: Final[str] = "localhost"


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """SMTP server coordinates and credentials."""

    host: str
    port: int
    username: str | None = None
    password: str | None = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """SOCKS5 proxy coordinates, credentials and the local bridge port."""

    host: str | None = None
    port: int | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    bridge_port: int = DEFAULT_PROXY_BRIDGE_PORT

    @property
    def is_configured(self) -> bool:
        return bool(self.host) and self.port is not None

    @property
    def requires_authentication(self) -> bool:
        return self.is_configured and bool(self.username)


@dataclass(frozen=True, slots=True)
class BridgeRequest:
    """Instruction for the mailer to run a local authenticating proxy bridge."""

    listen_port: int
    proxy: ProxyConfig


@dataclass(frozen=True, slots=True)
class Session:
    """Immutable protocol-session configuration.

    Example:
        >>> session = Session.from_properties({"mail.debug": "true"})
        >>> session.debug
        True
    """

    properties: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_properties(cls, properties: Mapping[str, object]) -> Session:
        """Create a session from arbitrary key/value pairs, stringifying values."""
        return cls(MappingProxyType({str(key): str(value) for key, value in properties.items()}))

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.properties.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self.properties

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.properties.items())))

    @property
    def protocol(self) -> str:
        return self.properties.get(TRANSPORT_PROTOCOL_KEY, "smtp")

    @property
    def debug(self) -> bool:
        return self.properties.get(DEBUG_KEY, "false").lower() == "true"


@dataclass(frozen=True, slots=True)
class SessionPlan:
    """Computed session plus the optional proxy bridge it relies on."""

    session: Session
    bridge: BridgeRequest | None = None


def resolve_opportunistic_tls(
    strategy: TransportStrategy,
    *,
    explicit: bool | None,
    configured: bool | None,
    defaults: Mapping[TransportStrategy, bool],
) -> bool:
    """Resolve the opportunistic-TLS switch: explicit > loaded config > strategy default.

    Example:
        >>> resolve_opportunistic_tls(
        ...     TransportStrategy.SMTP, explicit=None, configured=False, defaults={TransportStrategy.SMTP: True}
        ... )
        False
    """
    if explicit is not None:
        return explicit
    if configured is not None:
        return configured
    return defaults.get(strategy, False)


def _tls_properties(strategy: TransportStrategy, opportunistic_tls: bool) -> dict[str, str]:
    keys = strategy.keys
    if strategy is TransportStrategy.SMTP_TLS:
        return {
            keys.starttls_enable: "true",  # type: ignore[dict-item]
            keys.starttls_required: "true",  # type: ignore[dict-item]
            keys.ssl_checkserveridentity: "true",  # type: ignore[dict-item]
        }
    if strategy is TransportStrategy.SMTPS:
        return {
            keys.ssl_checkserveridentity: "true",  # type: ignore[dict-item]
            keys.quitwait: "false",  # type: ignore[dict-item]
        }
    if not opportunistic_tls:
        return {}
    # Upgrade when offered, trust whatever certificate the server presents.
    return {
        keys.starttls_enable: "true",  # type: ignore[dict-item]
        keys.starttls_required: "false",  # type: ignore[dict-item]
        keys.ssl_trust: "*",  # type: ignore[dict-item]
        keys.ssl_checkserveridentity: "false",  # type: ignore[dict-item]
    }


def _proxy_properties(
    strategy: TransportStrategy, proxy: ProxyConfig | None
) -> tuple[dict[str, str], BridgeRequest | None]:
    if proxy is None or not proxy.is_configured or not strategy.supports_proxy:
        return {}, None
    keys = strategy.keys
    if proxy.requires_authentication:
        bridge = BridgeRequest(listen_port=proxy.bridge_port, proxy=proxy)
        return {
            keys.socks_host: _BRIDGE_HOST,  # type: ignore[dict-item]
            keys.socks_port: str(proxy.bridge_port),  # type: ignore[dict-item]
        }, bridge
    return {
        keys.socks_host: str(proxy.host),  # type: ignore[dict-item]
        keys.socks_port: str(proxy.port),  # type: ignore[dict-item]
    }, None


def build_session(
    server: ServerConfig,
    strategy: TransportStrategy,
    *,
    proxy: ProxyConfig | None = None,
    debug: bool = False,
    opportunistic_tls: bool = True,
    session_timeout_ms: int = DEFAULT_SESSION_TIMEOUT_MS,
    extra_properties: Mapping[str, object] | None = None,
) -> SessionPlan:
    """Map connection settings onto session properties.

    Args:
        server: SMTP host, port and optional credentials. Only the username
            becomes a property; the password stays with the mailer.
        strategy: Selects the key template and TLS behaviour.
        proxy: Optional SOCKS5 proxy. Ignored for strategies without socks
            keys (SMTPS).
        debug: Value of the generic ``mail.debug`` key.
        opportunistic_tls: Already resolved switch; only affects ``SMTP``.
        session_timeout_ms: Socket timeouts in milliseconds.
        extra_properties: Raw overrides merged last; they always win.

    Returns:
        The session and, when the proxy needs authentication, the bridge the
        mailer must run while sending.
    """
    keys = strategy.keys
    properties: dict[str, str] = {
        TRANSPORT_PROTOCOL_KEY: strategy.protocol,
        keys.host: str(server.host),
        keys.port: str(server.port),
        keys.timeout: str(session_timeout_ms),
        keys.connection_timeout: str(session_timeout_ms),
        keys.write_timeout: str(session_timeout_ms),
    }
    properties.update(_tls_properties(strategy, opportunistic_tls))

    if server.username:
        properties[keys.username] = server.username
        properties[keys.auth] = "true"

    proxy_properties, bridge = _proxy_properties(strategy, proxy)
    properties.update(proxy_properties)

    properties[DEBUG_KEY] = _flag(debug)

    if extra_properties:
        properties.update({str(key): str(value) for key, value in extra_properties.items()})

    return SessionPlan(session=Session(MappingProxyType(properties)), bridge=bridge)


__all__ = [
    "DEFAULT_PROXY_BRIDGE_PORT",
    "DEFAULT_SESSION_TIMEOUT_MS",
    "BridgeRequest",
    "ProxyConfig",
    "ServerConfig",
    "Session",
    "SessionPlan",
    "build_session",
    "resolve_opportunistic_tls",
]
