"""Composition root wiring adapters to application ports."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..adapters.config.display import display_config, display_session
from ..adapters.config.loader import get_config
from ..adapters.logging.setup import init_logging
from ..adapters.mail.config import MailerConfig, load_email_defaults_from_dict, load_mailer_config_from_dict
from ..adapters.mail.converter import email_to_message
from ..adapters.mail.proxy_bridge import start_proxy_bridge
from ..adapters.mail.transport import deliver_message, probe_connection
from ..application.mailer import MailerBuilder, MailerPorts
from ..domain.builder import EmailBuilder, EmailPopulatingBuilder

# Static conformance assertions; pyright checks each adapter against its Protocol.
if TYPE_CHECKING:
    from ..adapters.memory import BridgeSpy, DisplaySpy, TransportSpy
    from ..application.ports import (
        ConvertEmail,
        DeliverMessage,
        DisplayConfig,
        DisplaySession,
        GetConfig,
        InitLogging,
        LoadEmailDefaultsFromDict,
        LoadMailerConfigFromDict,
        ProbeConnection,
        StartProxyBridge,
    )

    _assert_get_config: GetConfig = get_config
    _assert_display_config: DisplayConfig = display_config
    _assert_display_session: DisplaySession = display_session
    _assert_load_mailer_config: LoadMailerConfigFromDict = load_mailer_config_from_dict
    _assert_load_email_defaults: LoadEmailDefaultsFromDict = load_email_defaults_from_dict
    _assert_convert: ConvertEmail = email_to_message
    _assert_deliver: DeliverMessage = deliver_message
    _assert_probe: ProbeConnection = probe_connection
    _assert_start_bridge: StartProxyBridge = start_proxy_bridge
    _assert_init_logging: InitLogging = init_logging


@dataclass(frozen=True, slots=True)
class AppServices:
    """Frozen container holding all application port implementations."""

    get_config: GetConfig
    display_config: DisplayConfig
    display_session: DisplaySession
    load_mailer_config_from_dict: LoadMailerConfigFromDict
    load_email_defaults_from_dict: LoadEmailDefaultsFromDict
    init_logging: InitLogging
    mailer_ports: MailerPorts = field(repr=False)

    def mailer_builder(self, config: MailerConfig | Mapping[str, Any] | None = None) -> MailerBuilder:
        """Return a MailerBuilder over these ports.

        ``config`` may be a loaded :class:`MailerConfig` or a whole
        configuration dictionary whose ``[mailer]`` section is parsed.
        """
        if config is not None and not isinstance(config, MailerConfig):
            config = self.load_mailer_config_from_dict(config)
        return MailerBuilder(self.mailer_ports, config)

    def email_builder(self, config: Mapping[str, Any] | None = None) -> EmailPopulatingBuilder:
        """Return a blank email builder pre-populated from the ``[email]`` section."""
        defaults = self.load_email_defaults_from_dict(config) if config is not None else None
        return EmailBuilder.starting_blank(defaults)


def build_production() -> AppServices:
    """Wire production adapters into an AppServices container."""
    return AppServices(
        get_config=get_config,
        display_config=display_config,
        display_session=display_session,
        load_mailer_config_from_dict=load_mailer_config_from_dict,
        load_email_defaults_from_dict=load_email_defaults_from_dict,
        init_logging=init_logging,
        mailer_ports=MailerPorts(
            convert=email_to_message,
            deliver=deliver_message,
            probe=probe_connection,
            start_bridge=start_proxy_bridge,
        ),
    )


def build_testing(
    *,
    transport: TransportSpy | None = None,
    bridge: BridgeSpy | None = None,
    display: DisplaySpy | None = None,
    config: Mapping[str, Any] | None = None,
) -> AppServices:
    """Wire in-memory adapters into an AppServices container.

    The real MIME converter and configuration models are kept; SMTP, the
    proxy bridge, display and logging are replaced by spies.

    Args:
        transport: TransportSpy to capture deliveries; a fresh one when None.
        bridge: BridgeSpy to capture bridge lifecycles; a fresh one when None.
        display: DisplaySpy to capture display calls; a fresh one when None.
        config: Data served by ``get_config``; empty when None.

    Example:
        >>> from mailcraft.adapters.memory import TransportSpy
        >>> spy = TransportSpy()
        >>> services = build_testing(transport=spy)
        >>> services.mailer_ports.deliver == spy.deliver
        True
    """
    from ..adapters.memory import (
        BridgeSpy,
        DisplaySpy,
        TransportSpy,
        config_factory,
        init_logging_in_memory,
    )

    transport_spy = transport if transport is not None else TransportSpy()
    bridge_spy = bridge if bridge is not None else BridgeSpy()
    display_spy = display if display is not None else DisplaySpy()

    return AppServices(
        get_config=config_factory(config),
        display_config=display_spy.display_config,
        display_session=display_spy.display_session,
        load_mailer_config_from_dict=load_mailer_config_from_dict,
        load_email_defaults_from_dict=load_email_defaults_from_dict,
        init_logging=init_logging_in_memory,
        mailer_ports=MailerPorts(
            convert=email_to_message,
            deliver=transport_spy.deliver,
            probe=transport_spy.probe,
            start_bridge=bridge_spy.start_bridge,
        ),
    )


__all__ = [
    "AppServices",
    "build_production",
    "build_testing",
]
