"""Application layer - the mailer use case and its port definitions.

Contents:
    * :mod:`.ports` - Callable Protocol definitions for adapter functions
    * :mod:`.mailer` - MailerBuilder, Mailer and email validation
"""

from __future__ import annotations

from .mailer import Mailer, MailerBuilder, MailerPorts, validate_email
from .ports import (
    ConvertEmail,
    DeliverMessage,
    DisplayConfig,
    DisplaySession,
    GetConfig,
    InitLogging,
    LoadEmailDefaultsFromDict,
    LoadMailerConfigFromDict,
    ProbeConnection,
    RunningBridge,
    StartProxyBridge,
)

__all__ = [
    "ConvertEmail",
    "DeliverMessage",
    "DisplayConfig",
    "DisplaySession",
    "GetConfig",
    "InitLogging",
    "LoadEmailDefaultsFromDict",
    "LoadMailerConfigFromDict",
    "Mailer",
    "MailerBuilder",
    "MailerPorts",
    "ProbeConnection",
    "RunningBridge",
    "StartProxyBridge",
    "validate_email",
]
