"""Local authenticating SOCKS5 proxy bridge.

``smtplib`` clients reach a SOCKS5 proxy through
:class:`~mailcraft.adapters.mail.transport.ProxiedSMTP`, which only speaks the
unauthenticated handshake. When the real proxy needs a username and
password, the mailer starts a :class:`Socks5Bridge` on
``localhost:<bridge_port>``: it accepts unauthenticated clients, opens an
authenticated connection to the real proxy for each of them, and relays
bytes in both directions.

A bridge serves exactly one send operation and is stopped afterwards.
"""

from __future__ import annotations

import logging
import select
import socket
import socketserver
import threading
from typing import Final

from ...domain.session import BridgeRequest, ProxyConfig
from . import socks

logger = logging.getLogger(__name__)

_LISTEN_HOST: Final[str] = "localhost"
_RELAY_CHUNK: Final[int] = 64 * 1024
_UPSTREAM_TIMEOUT_SECONDS: Final[float] = 60.0


def relay(left: socket.socket, right: socket.socket) -> None:
    """Copy bytes between two sockets until either side closes."""
    sockets = [left, right]
    while True:
        readable, _writable, errored = select.select(sockets, [], sockets, 1.0)
        if errored:
            return
        for source in readable:
            data = source.recv(_RELAY_CHUNK)
            if not data:
                return
            (right if source is left else left).sendall(data)


class _BridgeHandler(socketserver.BaseRequestHandler):
    server: _BridgeServer

    def handle(self) -> None:
        client: socket.socket = self.request
        try:
            destination = socks.accept_no_auth(client)
        except OSError:
            logger.debug("Rejected proxy bridge client", exc_info=True)
            return

        upstream_config = self.server.upstream
        try:
            upstream = socks.open_connection(
                (str(upstream_config.host), int(upstream_config.port or 0)),
                destination,
                timeout=_UPSTREAM_TIMEOUT_SECONDS,
                username=upstream_config.username,
                password=upstream_config.password,
            )
        except OSError as exc:
            logger.warning(
                "Proxy bridge could not reach upstream proxy",
                extra={"proxy_host": upstream_config.host, "proxy_port": upstream_config.port, "error": str(exc)},
            )
            socks.send_reply(client, socks.REPLY_GENERAL_FAILURE)
            return

        with upstream:
            socks.send_reply(client, socks.REPLY_SUCCEEDED)
            upstream.settimeout(None)
            client.settimeout(None)
            relay(client, upstream)


class _BridgeServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True
    block_on_close = False

    def __init__(self, address: tuple[str, int], upstream: ProxyConfig) -> None:
        self.upstream = upstream
        super().__init__(address, _BridgeHandler)


class Socks5Bridge:
    """Running bridge listening on ``localhost:<listen_port>``.

    Example:
        >>> from mailcraft.domain.session import BridgeRequest, ProxyConfig
        >>> request = BridgeRequest(listen_port=0, proxy=ProxyConfig("proxy.example.com", 1080, "u", "p"))
        >>> bridge = Socks5Bridge(request)
        >>> bridge.port > 0
        True
        >>> bridge.stop()
    """

    def __init__(self, request: BridgeRequest) -> None:
        self._request = request
        self._server = _BridgeServer((_LISTEN_HOST, request.listen_port), request.proxy)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name=f"mailcraft-proxy-bridge-{self.port}",
            daemon=True,
        )
        self._thread.start()
        logger.debug(
            "Proxy bridge started",
            extra={"listen_port": self.port, "proxy_host": request.proxy.host, "proxy_port": request.proxy.port},
        )

    @property
    def port(self) -> int:
        return int(self._server.server_address[1])

    def stop(self) -> None:
        """Stop accepting connections and close the listening socket."""
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()
        logger.debug("Proxy bridge stopped", extra={"listen_port": self.port})


def start_proxy_bridge(request: BridgeRequest) -> Socks5Bridge:
    """Start a bridge for ``request``; the caller must call ``stop()``."""
    return Socks5Bridge(request)


__all__ = [
    "Socks5Bridge",
    "relay",
    "start_proxy_bridge",
]
