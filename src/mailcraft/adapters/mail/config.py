"""Mailer and email-default configuration models and loaders.

Provides the :class:`MailerConfig` and :class:`EmailDefaultsConfig` Pydantic
models for validated, immutable settings read from the ``[mailer]`` and
``[email]`` sections, and the loader functions that create them from
configuration dictionaries.

Every field defaults to ``None`` (meaning "not configured") so the mailer
builder can tell a configured value apart from an unset one when it layers
explicit settings over loaded configuration.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from btx_lib_mail import validate_email_address, validate_smtp_host
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...domain.builder import EmailDefaults
from ...domain.enums import RecipientType
from ...domain.recipient import Recipient
from ...domain.transport_strategy import TransportStrategy

_SECRET_FIELDS = frozenset({"smtp_password", "proxy_password"})


def _redacted_repr(model: BaseModel) -> str:
    fields: list[str] = []
    for name, value in model:
        if name in _SECRET_FIELDS and value is not None:
            fields.append(f"{name}='[REDACTED]'")
        else:
            fields.append(f"{name}={value!r}")
    return f"{type(model).__name__}({', '.join(fields)})"


class MailerConfig(BaseModel):
    """Validated, immutable ``[mailer]`` settings.

    Consulted by :class:`~mailcraft.application.mailer.MailerBuilder` as the
    lowest-precedence layer, below anything set explicitly on the builder.

    Example:
        >>> config = MailerConfig(smtp_host="smtp.example.com", smtp_port="587", transport_strategy="smtp_tls")
        >>> config.smtp_port
        587
        >>> config.transport_strategy
        <TransportStrategy.SMTP_TLS: 'SMTP_TLS'>
    """

    model_config = ConfigDict(frozen=True)

    transport_strategy: TransportStrategy | None = None
    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_username: str | None = None
    smtp_password: str | None = None
    proxy_host: str | None = None
    proxy_port: int | None = None
    proxy_username: str | None = None
    proxy_password: str | None = None
    proxy_bridge_port: int | None = None
    opportunistic_tls: bool | None = None
    debug: bool | None = None
    session_timeout_ms: int | None = None
    properties: dict[str, str] = Field(default_factory=dict)

    @field_validator(
        "transport_strategy",
        "smtp_host",
        "smtp_port",
        "smtp_username",
        "smtp_password",
        "proxy_host",
        "proxy_port",
        "proxy_username",
        "proxy_password",
        "proxy_bridge_port",
        "opportunistic_tls",
        "debug",
        "session_timeout_ms",
        mode="before",
    )
    @classmethod
    def _coerce_empty_string_to_none(cls, v: Any) -> Any:
        """Coerce empty or whitespace-only strings to None.

        Treats empty strings from config files and ``.env`` entries as "not
        configured", so they never shadow the builder's defaults.

        Examples:
            >>> MailerConfig._coerce_empty_string_to_none("  ") is None
            True
            >>> MailerConfig._coerce_empty_string_to_none("smtp.example.com")
            'smtp.example.com'
        """
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("transport_strategy", mode="before")
    @classmethod
    def _normalise_strategy(cls, v: Any) -> Any:
        """Accept strategy names case-insensitively (``smtps`` -> ``SMTPS``)."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("properties", mode="before")
    @classmethod
    def _stringify_properties(cls, v: Any) -> dict[str, str]:
        """Stringify raw session properties; TOML booleans become ``true``/``false``.

        Examples:
            >>> MailerConfig._stringify_properties({"mail.smtp.localhost": "relay", "mail.debug": True})
            {'mail.smtp.localhost': 'relay', 'mail.debug': 'true'}
            >>> MailerConfig._stringify_properties(None)
            {}
        """
        if not isinstance(v, Mapping):
            return {}
        result: dict[str, str] = {}
        for key, value in cast(Mapping[Any, Any], v).items():
            result[str(key)] = str(value).lower() if isinstance(value, bool) else str(value)
        return result

    @model_validator(mode="after")
    def _validate_config(self) -> MailerConfig:
        """Validate configuration values.

        Raises:
            ValueError: When a port or timeout is out of range or the SMTP
                host is malformed.

        Example:
            >>> MailerConfig(smtp_port=0)  # doctest: +IGNORE_EXCEPTION_DETAIL
            Traceback (most recent call last):
            ...
            ValidationError: ...
        """
        for name in ("smtp_port", "proxy_port", "proxy_bridge_port"):
            port = getattr(self, name)
            if port is not None and not 0 < port < 65536:
                raise ValueError(f"{name} must be between 1 and 65535, got {port}")

        if self.session_timeout_ms is not None and self.session_timeout_ms <= 0:
            raise ValueError(f"session_timeout_ms must be positive, got {self.session_timeout_ms}")

        if self.smtp_host is not None:
            validate_smtp_host(f"{self.smtp_host}:{self.smtp_port}" if self.smtp_port else self.smtp_host)

        return self

    def __repr__(self) -> str:
        """Return string representation with passwords redacted.

        Example:
            >>> config = MailerConfig(smtp_host="smtp.example.com", smtp_password="secret123")
            >>> "secret123" in repr(config)
            False
            >>> "[REDACTED]" in repr(config)
            True
        """
        return _redacted_repr(self)


class EmailDefaultsConfig(BaseModel):
    """Validated ``[email]`` settings that pre-populate blank builders.

    Example:
        >>> config = EmailDefaultsConfig(from_address="noreply@example.com", to="ops@example.com")
        >>> config.to
        ['ops@example.com']
    """

    model_config = ConfigDict(frozen=True)

    from_address: str | None = None
    from_name: str | None = None
    reply_to_address: str | None = None
    reply_to_name: str | None = None
    bounce_to_address: str | None = None
    bounce_to_name: str | None = None
    to: list[str] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    subject: str | None = None

    @field_validator("to", "cc", "bcc", mode="before")
    @classmethod
    def _coerce_string_to_list(cls, v: Any) -> list[str]:
        """Coerce single strings to single-element lists.

        Handles environment variables and .env files that provide single strings
        instead of TOML arrays. Empty strings become empty lists.

        Examples:
            >>> EmailDefaultsConfig._coerce_string_to_list("a@example.com")
            ['a@example.com']
            >>> EmailDefaultsConfig._coerce_string_to_list("")
            []
        """
        if isinstance(v, str):
            return [v] if v.strip() else []
        if isinstance(v, list):
            return cast(list[str], v)
        return []

    @field_validator(
        "from_address",
        "from_name",
        "reply_to_address",
        "reply_to_name",
        "bounce_to_address",
        "bounce_to_name",
        "subject",
        mode="before",
    )
    @classmethod
    def _coerce_empty_string_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def _validate_addresses(self) -> EmailDefaultsConfig:
        for address in (self.from_address, self.reply_to_address, self.bounce_to_address):
            if address is not None:
                validate_email_address(address)
        for address in (*self.to, *self.cc, *self.bcc):
            validate_email_address(address)
        return self

    def to_defaults(self) -> EmailDefaults:
        """Convert to the domain :class:`EmailDefaults`.

        Example:
            >>> defaults = EmailDefaultsConfig(from_address="a@example.com", cc=["b@example.com"]).to_defaults()
            >>> defaults.recipients[0].type
            <RecipientType.CC: 'Cc'>
        """

        def single(address: str | None, name: str | None) -> Recipient | None:
            return None if address is None else Recipient(name, address)

        recipients = (
            *(Recipient(None, address, RecipientType.TO) for address in self.to),
            *(Recipient(None, address, RecipientType.CC) for address in self.cc),
            *(Recipient(None, address, RecipientType.BCC) for address in self.bcc),
        )
        return EmailDefaults(
            from_recipient=single(self.from_address, self.from_name),
            reply_to_recipient=single(self.reply_to_address, self.reply_to_name),
            bounce_to_recipient=single(self.bounce_to_address, self.bounce_to_name),
            recipients=recipients,
            subject=self.subject,
        )


def _section(config_dict: Mapping[str, Any], name: str) -> Any:
    section: Any = config_dict.get(name, {})
    if not isinstance(section, Mapping):
        return section
    return dict(cast(Mapping[str, Any], section))


def load_mailer_config_from_dict(config_dict: Mapping[str, Any]) -> MailerConfig:
    """Load MailerConfig from a configuration dictionary.

    Bridges lib_layered_config's dictionary output with the typed
    MailerConfig Pydantic model.

    Args:
        config_dict: Configuration dictionary typically from lib_layered_config.
            Expected to have a 'mailer' section.

    Returns:
        Mailer settings; keys missing from the section stay unset.

    Example:
        >>> config = load_mailer_config_from_dict(
        ...     {"mailer": {"smtp_host": "smtp.example.com", "properties": {"mail.smtp.localhost": "me"}}}
        ... )
        >>> config.smtp_host
        'smtp.example.com'
        >>> config.properties
        {'mail.smtp.localhost': 'me'}
        >>> load_mailer_config_from_dict({}).smtp_host is None
        True
    """
    return MailerConfig.model_validate(_section(config_dict, "mailer") or {})


def load_email_defaults_from_dict(config_dict: Mapping[str, Any]) -> EmailDefaults:
    """Load builder defaults from the ``[email]`` section.

    Example:
        >>> defaults = load_email_defaults_from_dict({"email": {"from_address": "a@example.com", "subject": "Report"}})
        >>> defaults.from_recipient.address, defaults.subject
        ('a@example.com', 'Report')
    """
    return EmailDefaultsConfig.model_validate(_section(config_dict, "email") or {}).to_defaults()


__all__ = [
    "EmailDefaultsConfig",
    "MailerConfig",
    "load_email_defaults_from_dict",
    "load_mailer_config_from_dict",
]
