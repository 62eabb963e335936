"""In-memory transport and proxy bridge adapters for testing.

Contents:
    * :class:`TransportSpy` - Records deliveries and connection probes.
    * :class:`BridgeSpy` - Records bridge starts and stops.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from email.message import EmailMessage

from ...domain.session import BridgeRequest, Session


@dataclass(frozen=True, slots=True)
class Delivery:
    """One captured ``deliver`` call."""

    message: EmailMessage
    session: Session
    password: str | None
    envelope_from: str
    envelope_recipients: tuple[str, ...]


@dataclass
class TransportSpy:
    """Captures deliveries instead of talking SMTP.

    Each test should create its own spy. ``raise_exception`` is raised after
    the call has been recorded, so tests can assert on what was attempted.

    Example:
        >>> spy = TransportSpy()
        >>> spy.deliver(
        ...     EmailMessage(),
        ...     session=Session({}),
        ...     password=None,
        ...     envelope_from="a@example.com",
        ...     envelope_recipients=["b@example.com"],
        ... )
        >>> spy.deliveries[0].envelope_recipients
        ('b@example.com',)
    """

    deliveries: list[Delivery] = field(default_factory=list)
    probes: list[Session] = field(default_factory=list)
    raise_exception: BaseException | None = None

    def clear(self) -> None:
        self.deliveries.clear()
        self.probes.clear()
        self.raise_exception = None

    def deliver(
        self,
        message: EmailMessage,
        *,
        session: Session,
        password: str | None,
        envelope_from: str,
        envelope_recipients: Sequence[str],
    ) -> None:
        self.deliveries.append(
            Delivery(
                message=message,
                session=session,
                password=password,
                envelope_from=envelope_from,
                envelope_recipients=tuple(envelope_recipients),
            )
        )
        if self.raise_exception is not None:
            raise self.raise_exception

    def probe(self, *, session: Session, password: str | None) -> None:
        self.probes.append(session)
        if self.raise_exception is not None:
            raise self.raise_exception


@dataclass
class _SpyHandle:
    spy: BridgeSpy
    request: BridgeRequest

    def stop(self) -> None:
        self.spy.stopped.append(self.request)
        if self.spy.stop_exception is not None:
            raise self.spy.stop_exception


@dataclass
class BridgeSpy:
    """Records proxy bridge lifecycles without opening sockets.

    Example:
        >>> from mailcraft.domain.session import ProxyConfig
        >>> spy = BridgeSpy()
        >>> request = BridgeRequest(listen_port=1080, proxy=ProxyConfig("proxy", 1081, "u", "p"))
        >>> spy.start_bridge(request).stop()
        >>> spy.running
        0
    """

    started: list[BridgeRequest] = field(default_factory=list)
    stopped: list[BridgeRequest] = field(default_factory=list)
    start_exception: BaseException | None = None
    stop_exception: BaseException | None = None

    @property
    def running(self) -> int:
        """Bridges started but not yet stopped."""
        return len(self.started) - len(self.stopped)

    def start_bridge(self, request: BridgeRequest) -> _SpyHandle:
        if self.start_exception is not None:
            raise self.start_exception
        self.started.append(request)
        return _SpyHandle(self, request)


__all__ = ["BridgeSpy", "Delivery", "TransportSpy"]
