"""SOCKS5 helpers and the local authenticating proxy bridge.

The integration tests chain the real pieces over localhost sockets:
smtplib -> bridge (no auth) -> fake upstream proxy (username/password) -> aiosmtpd.
"""

from __future__ import annotations

import socket
import socketserver
import threading
from collections.abc import Iterator
from typing import Any

import pytest

from mailcraft.adapters.mail import socks
from mailcraft.adapters.mail.proxy_bridge import Socks5Bridge, relay
from mailcraft.composition import build_production
from mailcraft.domain.builder import EmailBuilder
from mailcraft.domain.session import BridgeRequest, ProxyConfig

# ======================== Address encoding ========================


@pytest.mark.os_agnostic
@pytest.mark.parametrize(
    ("host", "port"),
    [("192.0.2.10", 25), ("2001:db8::1", 587), ("mx.example.com", 465)],
)
def test_encoded_addresses_read_back(host: str, port: int) -> None:
    """IPv4, IPv6 and domain destinations survive the wire format."""
    left, right = socket.socketpair()
    with left, right:
        left.sendall(socks.encode_address(host, port))
        assert socks.read_address(right) == (host, port)


@pytest.mark.os_agnostic
def test_overlong_host_names_are_rejected() -> None:
    """SOCKS5 domain names are limited to 255 bytes."""
    with pytest.raises(socks.SocksError, match="too long"):
        socks.encode_address("a" * 256, 25)


@pytest.mark.os_agnostic
def test_overlong_labels_are_a_socks_error() -> None:
    """A DNS label over 63 bytes fails as an OSError, like every transport error."""
    with pytest.raises(socks.SocksError, match="too long or malformed") as raised:
        socks.encode_address("a" * 70 + ".example.com", 25)

    assert isinstance(raised.value, OSError)


@pytest.mark.os_agnostic
def test_recv_exact_reports_early_eof() -> None:
    """A peer closing mid-handshake is a SocksError."""
    left, right = socket.socketpair()
    with right:
        left.sendall(b"\x05")
        left.close()
        with pytest.raises(socks.SocksError, match="closed"):
            socks.recv_exact(right, 2)


# ======================== Fake upstream proxy ========================


class _AuthenticatingProxyHandler(socketserver.BaseRequestHandler):
    server: _AuthenticatingProxy

    def handle(self) -> None:
        client: socket.socket = self.request
        _version, count = socks.recv_exact(client, 2)
        offered = socks.recv_exact(client, count)
        self.server.offered_methods.append(bytes(offered))
        client.sendall(bytes([socks.SOCKS_VERSION, socks.METHOD_USERNAME_PASSWORD]))

        _auth_version, user_length = socks.recv_exact(client, 2)
        username = socks.recv_exact(client, user_length).decode()
        (password_length,) = socks.recv_exact(client, 1)
        password = socks.recv_exact(client, password_length).decode()
        accepted = (username, password) == self.server.credentials
        client.sendall(bytes([socks.AUTH_VERSION, 0x00 if accepted else 0x01]))
        if not accepted:
            return

        socks.recv_exact(client, 3)
        destination = socks.read_address(client)
        self.server.destinations.append(destination)
        with socket.create_connection(destination, timeout=5) as upstream:
            socks.send_reply(client, socks.REPLY_SUCCEEDED)
            upstream.settimeout(None)
            relay(client, upstream)


class _AuthenticatingProxy(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, credentials: tuple[str, str]) -> None:
        self.credentials = credentials
        self.offered_methods: list[bytes] = []
        self.destinations: list[tuple[str, int]] = []
        super().__init__(("127.0.0.1", 0), _AuthenticatingProxyHandler)

    @property
    def port(self) -> int:
        return int(self.server_address[1])


@pytest.fixture
def upstream_proxy() -> Iterator[_AuthenticatingProxy]:
    """SOCKS5 proxy on 127.0.0.1 accepting user 'relay' with password 'hunter2'."""
    server = _AuthenticatingProxy(("relay", "hunter2"))
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


# ======================== Client negotiation ========================


@pytest.mark.integration
def test_open_connection_authenticates_with_the_proxy(
    upstream_proxy: _AuthenticatingProxy, smtp_server: tuple[Any, int]
) -> None:
    """The client offers username/password when it has credentials."""
    _handler, smtp_port = smtp_server

    sock = socks.open_connection(
        ("127.0.0.1", upstream_proxy.port),
        ("127.0.0.1", smtp_port),
        timeout=5,
        username="relay",
        password="hunter2",
    )
    with sock:
        greeting = sock.recv(1024)

    assert greeting.startswith(b"220")
    assert upstream_proxy.offered_methods == [bytes([socks.METHOD_NO_AUTH, socks.METHOD_USERNAME_PASSWORD])]
    assert upstream_proxy.destinations == [("127.0.0.1", smtp_port)]


@pytest.mark.integration
def test_wrong_credentials_raise_socks_error(upstream_proxy: _AuthenticatingProxy) -> None:
    """Rejected credentials surface as an OSError subclass."""
    with pytest.raises(socks.SocksError, match="rejected"):
        socks.open_connection(
            ("127.0.0.1", upstream_proxy.port), ("127.0.0.1", 25), timeout=5, username="relay", password="wrong"
        )


# ======================== Bridge ========================


@pytest.mark.integration
def test_bridge_listens_on_the_requested_port_until_stopped(free_port: Any) -> None:
    """Stopping the bridge releases the port."""
    port = free_port()
    bridge = Socks5Bridge(BridgeRequest(listen_port=port, proxy=ProxyConfig("127.0.0.1", 1, "u", "p")))
    try:
        assert bridge.port == port
        socket.create_connection(("127.0.0.1", port), timeout=5).close()
    finally:
        bridge.stop()

    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=5).close()


@pytest.mark.integration
def test_bridge_relays_unauthenticated_clients_through_the_proxy(
    upstream_proxy: _AuthenticatingProxy, smtp_server: tuple[Any, int]
) -> None:
    """A client without credentials reaches the server via the authenticated upstream."""
    _handler, smtp_port = smtp_server
    proxy = ProxyConfig("127.0.0.1", upstream_proxy.port, "relay", "hunter2")
    bridge = Socks5Bridge(BridgeRequest(listen_port=0, proxy=proxy))
    try:
        sock = socks.open_connection(("127.0.0.1", bridge.port), ("127.0.0.1", smtp_port), timeout=5)
        with sock:
            assert sock.recv(1024).startswith(b"220")
    finally:
        bridge.stop()

    assert upstream_proxy.destinations == [("127.0.0.1", smtp_port)]


@pytest.mark.integration
def test_bridge_reports_upstream_failures_to_the_client(upstream_proxy: _AuthenticatingProxy) -> None:
    """Bad upstream credentials turn into a SOCKS failure reply."""
    proxy = ProxyConfig("127.0.0.1", upstream_proxy.port, "relay", "wrong")
    bridge = Socks5Bridge(BridgeRequest(listen_port=0, proxy=proxy))
    try:
        with pytest.raises(socks.SocksError, match="could not connect"):
            socks.open_connection(("127.0.0.1", bridge.port), ("127.0.0.1", 25), timeout=5)
    finally:
        bridge.stop()


@pytest.mark.integration
def test_mailer_sends_through_an_authenticating_proxy(
    upstream_proxy: _AuthenticatingProxy, smtp_server: tuple[Any, int], free_port: Any
) -> None:
    """End to end: the production mailer starts the bridge, delivers and stops it."""
    handler, smtp_port = smtp_server
    bridge_port = free_port()
    mailer = (
        build_production()
        .mailer_builder()
        .with_smtp_server("127.0.0.1", smtp_port)
        .with_proxy("127.0.0.1", upstream_proxy.port, "relay", "hunter2")
        .with_proxy_bridge_port(bridge_port)
        .with_session_timeout(5000)
        .build_mailer()
    )
    email = (
        EmailBuilder.starting_blank()
        .from_("robot@example.com")
        .to("ops@example.com")
        .with_subject("Through the proxy")
        .with_plain_text("Hello.")
        .build_email()
    )

    with mailer:
        result = mailer.send_mail(email)

    assert handler.messages[0]["to"] == ["ops@example.com"]
    assert result.message_id.encode() in handler.messages[0]["data"]
    assert upstream_proxy.destinations == [("127.0.0.1", smtp_port)]
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", bridge_port), timeout=5).close()
