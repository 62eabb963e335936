"""Minimal SOCKS5 protocol helpers (RFC 1928, RFC 1929).

Only the ``CONNECT`` command is supported. The client side is used by the
SMTP transport to reach the server through a proxy; the server side is used
by the local proxy bridge to accept unauthenticated clients.
"""

from __future__ import annotations

import ipaddress
import socket
import struct
from typing import Final

SOCKS_VERSION: Final[int] = 0x05
AUTH_VERSION: Final[int] = 0x01

METHOD_NO_AUTH: Final[int] = 0x00
METHOD_USERNAME_PASSWORD: Final[int] = 0x02
METHOD_NONE_ACCEPTABLE: Final[int] = 0xFF

CMD_CONNECT: Final[int] = 0x01

ATYP_IPV4: Final[int] = 0x01
ATYP_DOMAIN: Final[int] = 0x03
ATYP_IPV6: Final[int] = 0x04

REPLY_SUCCEEDED: Final[int] = 0x00
REPLY_GENERAL_FAILURE: Final[int] = 0x01
REPLY_COMMAND_NOT_SUPPORTED: Final[int] = 0x07

_REPLY_MESSAGES: Final[dict[int, str]] = {
    0x01: "general SOCKS server failure",
    0x02: "connection not allowed by ruleset",
    0x03: "network unreachable",
    0x04: "host unreachable",
    0x05: "connection refused",
    0x06: "TTL expired",
    0x07: "command not supported",
    0x08: "address type not supported",
}


class SocksError(OSError):
    """SOCKS negotiation failure.

    Subclasses OSError so callers handling connection failures from
    ``smtplib`` catch proxy failures the same way.

    Example:
        >>> isinstance(SocksError("proxy refused"), OSError)
        True
    """


def recv_exact(sock: socket.socket, size: int) -> bytes:
    """Read exactly ``size`` bytes or raise :class:`SocksError` on early EOF."""
    chunks: list[bytes] = []
    remaining = size
    while remaining:
        chunk = sock.recv(remaining)
        if not chunk:
            raise SocksError("connection closed during SOCKS negotiation")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def encode_address(host: str, port: int) -> bytes:
    """Encode a destination as ``ATYP | ADDR | PORT``.

    Examples:
        >>> encode_address("10.0.0.1", 25).hex()
        '010a0000010019'
        >>> encode_address("mx.example.com", 587)[:2]
        b'\\x03\\x0e'
    """
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        try:
            encoded = host.encode("idna")
        except UnicodeError:
            raise SocksError(f"host name too long or malformed for SOCKS5: {host}") from None
        if len(encoded) > 255:
            raise SocksError(f"host name too long for SOCKS5: {host}") from None
        return bytes([ATYP_DOMAIN, len(encoded)]) + encoded + struct.pack("!H", port)
    atyp = ATYP_IPV4 if ip.version == 4 else ATYP_IPV6
    return bytes([atyp]) + ip.packed + struct.pack("!H", port)


def read_address(sock: socket.socket) -> tuple[str, int]:
    """Read ``ATYP | ADDR | PORT`` from ``sock``."""
    atyp = recv_exact(sock, 1)[0]
    if atyp == ATYP_IPV4:
        host = str(ipaddress.IPv4Address(recv_exact(sock, 4)))
    elif atyp == ATYP_IPV6:
        host = str(ipaddress.IPv6Address(recv_exact(sock, 16)))
    elif atyp == ATYP_DOMAIN:
        length = recv_exact(sock, 1)[0]
        host = recv_exact(sock, length).decode("idna")
    else:
        raise SocksError(f"unsupported SOCKS address type: {atyp:#x}")
    (port,) = struct.unpack("!H", recv_exact(sock, 2))
    return host, port


def _authenticate(sock: socket.socket, username: str, password: str) -> None:
    user = username.encode("utf-8")
    secret = password.encode("utf-8")
    if len(user) > 255 or len(secret) > 255:
        raise SocksError("SOCKS5 username and password must be at most 255 bytes")
    sock.sendall(bytes([AUTH_VERSION, len(user)]) + user + bytes([len(secret)]) + secret)
    _version, status = recv_exact(sock, 2)
    if status != 0x00:
        raise SocksError("SOCKS5 proxy rejected the username/password")


def negotiate(
    sock: socket.socket,
    dest_host: str,
    dest_port: int,
    *,
    username: str | None = None,
    password: str | None = None,
) -> None:
    """Run the client side of a SOCKS5 ``CONNECT`` on an open proxy connection.

    Raises:
        SocksError: When the proxy refuses the method, the credentials or
            the connection.
    """
    methods = [METHOD_NO_AUTH]
    if username:
        methods.append(METHOD_USERNAME_PASSWORD)
    sock.sendall(bytes([SOCKS_VERSION, len(methods), *methods]))
    version, method = recv_exact(sock, 2)
    if version != SOCKS_VERSION:
        raise SocksError(f"unexpected SOCKS version from proxy: {version}")
    if method == METHOD_USERNAME_PASSWORD and username:
        _authenticate(sock, username, password or "")
    elif method != METHOD_NO_AUTH:
        raise SocksError("SOCKS5 proxy accepted none of the offered authentication methods")

    sock.sendall(bytes([SOCKS_VERSION, CMD_CONNECT, 0x00]) + encode_address(dest_host, dest_port))
    _version, reply, _reserved = recv_exact(sock, 3)
    read_address(sock)
    if reply != REPLY_SUCCEEDED:
        raise SocksError(f"SOCKS5 proxy could not connect: {_REPLY_MESSAGES.get(reply, hex(reply))}")


def open_connection(
    proxy: tuple[str, int],
    destination: tuple[str, int],
    *,
    timeout: float | None = None,
    source_address: tuple[str, int] | None = None,
    username: str | None = None,
    password: str | None = None,
) -> socket.socket:
    """Connect to ``destination`` through the SOCKS5 proxy at ``proxy``."""
    sock = socket.create_connection(proxy, timeout=timeout, source_address=source_address)
    try:
        negotiate(sock, destination[0], destination[1], username=username, password=password)
    except BaseException:
        sock.close()
        raise
    return sock


def accept_no_auth(sock: socket.socket) -> tuple[str, int]:
    """Run the server side for an unauthenticated client; return the requested destination."""
    version, count = recv_exact(sock, 2)
    methods = recv_exact(sock, count)
    if version != SOCKS_VERSION or METHOD_NO_AUTH not in methods:
        sock.sendall(bytes([SOCKS_VERSION, METHOD_NONE_ACCEPTABLE]))
        raise SocksError("client offered no acceptable SOCKS5 method")
    sock.sendall(bytes([SOCKS_VERSION, METHOD_NO_AUTH]))

    _version, command, _reserved = recv_exact(sock, 3)
    destination = read_address(sock)
    if command != CMD_CONNECT:
        send_reply(sock, REPLY_COMMAND_NOT_SUPPORTED)
        raise SocksError(f"unsupported SOCKS command: {command:#x}")
    return destination


def send_reply(sock: socket.socket, reply: int) -> None:
    """Send a ``CONNECT`` reply with an unspecified bound address."""
    sock.sendall(bytes([SOCKS_VERSION, reply, 0x00]) + encode_address("0.0.0.0", 0))


__all__ = [
    "REPLY_GENERAL_FAILURE",
    "REPLY_SUCCEEDED",
    "SocksError",
    "accept_no_auth",
    "encode_address",
    "negotiate",
    "open_connection",
    "read_address",
    "recv_exact",
    "send_reply",
]
