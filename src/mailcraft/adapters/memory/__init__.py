"""In-memory adapter implementations for testing.

Lightweight implementations of the application ports that never touch the
filesystem, the network or the logging runtime.

Contents:
    * :mod:`.config` - In-memory configuration and display adapters
    * :mod:`.transport` - TransportSpy and BridgeSpy
    * :mod:`.logging` - No-op logging initialiser
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import DisplaySpy, config_factory, get_config_in_memory
from .logging import init_logging_in_memory
from .transport import BridgeSpy, Delivery, TransportSpy

# Static conformance assertions
if TYPE_CHECKING:
    from ...application.ports import (
        DeliverMessage,
        DisplayConfig,
        DisplaySession,
        GetConfig,
        InitLogging,
        ProbeConnection,
        StartProxyBridge,
    )

    _assert_get_config: GetConfig = get_config_in_memory
    _assert_init_logging: InitLogging = init_logging_in_memory
    _assert_display_config: DisplayConfig = DisplaySpy().display_config
    _assert_display_session: DisplaySession = DisplaySpy().display_session
    _assert_deliver: DeliverMessage = TransportSpy().deliver
    _assert_probe: ProbeConnection = TransportSpy().probe
    _assert_start_bridge: StartProxyBridge = BridgeSpy().start_bridge

__all__ = [
    "BridgeSpy",
    "Delivery",
    "DisplaySpy",
    "TransportSpy",
    "config_factory",
    "get_config_in_memory",
    "init_logging_in_memory",
]
