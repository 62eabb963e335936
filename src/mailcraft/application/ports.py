"""Application ports: callable Protocol definitions for adapter functions.

Each Protocol class defines a ``__call__`` method whose signature exactly
matches the corresponding adapter function.  Existing module-level functions
satisfy these protocols automatically via structural subtyping (PEP 544).

System Role:
    Sits between domain and adapters.  Infrastructure types (``Config``,
    ``MailerConfig``) are imported under ``TYPE_CHECKING`` only so that
    import-linter layer contracts remain satisfied at runtime.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from email.message import EmailMessage
from typing import TYPE_CHECKING, Any, Protocol

from ..domain.builder import EmailDefaults
from ..domain.email import Email
from ..domain.enums import OutputFormat
from ..domain.session import BridgeRequest, Session

if TYPE_CHECKING:
    from lib_layered_config import Config

    from ..adapters.mail.config import MailerConfig


class GetConfig(Protocol):
    """Load layered configuration with application defaults."""

    def __call__(self, *, profile: str | None = ..., start_dir: str | None = ...) -> Config: ...


class DisplayConfig(Protocol):
    """Display the provided configuration in the requested format."""

    def __call__(
        self, config: Config, *, output_format: OutputFormat = ..., section: str | None = ..., profile: str | None = ...
    ) -> None: ...


class DisplaySession(Protocol):
    """Display the session properties a mailer would use."""

    def __call__(self, session: Session, *, output_format: OutputFormat = ...) -> None: ...


class LoadMailerConfigFromDict(Protocol):
    """Load MailerConfig from a configuration dictionary."""

    def __call__(self, config_dict: Mapping[str, Any]) -> MailerConfig: ...


class LoadEmailDefaultsFromDict(Protocol):
    """Load builder defaults from the ``[email]`` section of a configuration dictionary."""

    def __call__(self, config_dict: Mapping[str, Any]) -> EmailDefaults: ...


class ConvertEmail(Protocol):
    """Convert an Email into a wire-format message, assigning a Message-ID when missing."""

    def __call__(self, email: Email) -> EmailMessage: ...


class DeliverMessage(Protocol):
    """Deliver a wire-format message using the connection described by ``session``."""

    def __call__(
        self,
        message: EmailMessage,
        *,
        session: Session,
        password: str | None,
        envelope_from: str,
        envelope_recipients: Sequence[str],
    ) -> None: ...


class ProbeConnection(Protocol):
    """Open and close a connection described by ``session``, raising on failure."""

    def __call__(self, *, session: Session, password: str | None) -> None: ...


class RunningBridge(Protocol):
    """Handle for a started proxy bridge."""

    def stop(self) -> None: ...


class StartProxyBridge(Protocol):
    """Start a local proxy bridge for the duration of one operation."""

    def __call__(self, request: BridgeRequest) -> RunningBridge: ...


class InitLogging(Protocol):
    """Initialize lib_log_rich runtime with the provided configuration."""

    def __call__(self, config: Config) -> None: ...


__all__ = [
    "ConvertEmail",
    "DeliverMessage",
    "DisplayConfig",
    "DisplaySession",
    "GetConfig",
    "InitLogging",
    "LoadEmailDefaultsFromDict",
    "LoadMailerConfigFromDict",
    "ProbeConnection",
    "RunningBridge",
    "StartProxyBridge",
]
