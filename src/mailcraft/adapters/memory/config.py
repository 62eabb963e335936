"""In-memory configuration adapters for testing.

Satisfy the same Protocols as the production adapters without touching the
filesystem. Display adapters record what they were asked to show so CLI
tests can assert on it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from lib_layered_config import Config

from ...domain.enums import OutputFormat
from ...domain.session import Session


def config_factory(data: Mapping[str, Any] | None = None) -> Any:
    """Return a ``get_config`` replacement serving ``data`` for every profile.

    Example:
        >>> get_config = config_factory({"mailer": {"smtp_host": "smtp.test"}})
        >>> get_config(profile="staging")["mailer"]["smtp_host"]
        'smtp.test'
    """
    payload = dict(data or {})

    def get_config_in_memory(*, profile: str | None = None, start_dir: str | None = None) -> Config:
        return Config(payload, {})

    return get_config_in_memory


get_config_in_memory = config_factory()


@dataclass
class DisplaySpy:
    """Records display requests instead of printing them.

    Example:
        >>> spy = DisplaySpy()
        >>> spy.display_session(Session({"mail.transport.protocol": "smtp"}), output_format=OutputFormat.JSON)
        >>> spy.sessions[0][1]
        <OutputFormat.JSON: 'json'>
    """

    configs: list[tuple[Config, OutputFormat, str | None]] = field(default_factory=list)
    sessions: list[tuple[Session, OutputFormat]] = field(default_factory=list)

    def display_config(
        self,
        config: Config,
        *,
        output_format: OutputFormat = OutputFormat.HUMAN,
        section: str | None = None,
        profile: str | None = None,
    ) -> None:
        if section is not None and section not in config.as_dict():
            raise ValueError(f"Section {section!r} not found in configuration")
        self.configs.append((config, output_format, section))

    def display_session(self, session: Session, *, output_format: OutputFormat = OutputFormat.HUMAN) -> None:
        self.sessions.append((session, output_format))


__all__ = [
    "DisplaySpy",
    "config_factory",
    "get_config_in_memory",
]
