"""``--set SECTION.KEY=VALUE`` overrides applied on top of the loaded Config.

Values are coerced with ``orjson`` (``true`` → bool, ``587`` → int, ``["a"]``
→ list) and fall back to plain strings. Session property names contain dots
themselves, so everything after ``mailer.properties.`` is kept as a single
key::

    --set mailer.smtp_port=587
    --set mailer.properties.mail.smtp.localhost=relay.example.com
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import orjson
from lib_layered_config import Config

CoercedValue = str | int | float | bool | None | list[object] | dict[str, object]

# (section, key) pairs whose remaining path is one opaque key.
_OPAQUE_TABLES = frozenset({("mailer", "properties")})


@dataclass(frozen=True, slots=True)
class ConfigOverride:
    """One parsed ``--set`` override."""

    section: str
    key_path: tuple[str, ...]
    value: CoercedValue


def coerce_value(raw: str) -> CoercedValue:
    """Parse ``raw`` as JSON, keeping the text when it is not valid JSON.

    Examples:
        >>> coerce_value("587"), coerce_value("false"), coerce_value("SMTPS")
        (587, False, 'SMTPS')
        >>> coerce_value('["ops@example.com"]')
        ['ops@example.com']
        >>> coerce_value("")
        ''
    """
    if not raw:
        return raw
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError:
        return raw


def _split_key(section: str, rest: list[str]) -> tuple[str, ...]:
    if len(rest) > 2 and (section, rest[0]) in _OPAQUE_TABLES:
        return (rest[0], ".".join(rest[1:]))
    return tuple(rest)


def parse_override(raw: str) -> ConfigOverride:
    """Parse ``SECTION.KEY[.SUBKEY...]=VALUE``.

    Raises:
        ValueError: When ``=`` or the section dot is missing, or a path
            component is empty.

    Examples:
        >>> parse_override("mailer.smtp_port=587")
        ConfigOverride(section='mailer', key_path=('smtp_port',), value=587)
        >>> parse_override("mailer.properties.mail.smtp.localhost=relay").key_path
        ('properties', 'mail.smtp.localhost')
        >>> parse_override("lib_log_rich.payload_limits.message_max_chars=8192").key_path
        ('payload_limits', 'message_max_chars')
    """
    path, separator, value = raw.partition("=")
    if not separator:
        raise ValueError(f"Invalid override {raw!r}: must contain '='")
    section, dot, key = path.partition(".")
    if not dot:
        raise ValueError(f"Invalid override {raw!r}: key must contain at least one dot (SECTION.KEY)")
    if not section:
        raise ValueError(f"Invalid override {raw!r}: section name is empty")
    parts = key.split(".")
    if not all(parts):
        raise ValueError(f"Invalid override {raw!r}: key path contains empty component")
    return ConfigOverride(section=section, key_path=_split_key(section, parts), value=coerce_value(value))


def _insert(tree: dict[str, dict[str, object]], override: ConfigOverride) -> None:
    node: dict[str, object] = tree.setdefault(override.section, {})
    for part in override.key_path[:-1]:
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            raise TypeError(f"Expected dict at key {part!r}, got {type(child).__name__}")
        node = cast("dict[str, object]", child)
    node[override.key_path[-1]] = override.value


def apply_overrides(config: Config, raw_overrides: tuple[str, ...]) -> Config:
    """Return ``config`` with every override deep-merged in.

    Example:
        >>> cfg = Config({"mailer": {"smtp_port": 25}}, {})
        >>> apply_overrides(cfg, ("mailer.smtp_port=2525",))["mailer"]["smtp_port"]
        2525
        >>> apply_overrides(cfg, ()) is cfg
        True
    """
    if not raw_overrides:
        return config
    tree: dict[str, dict[str, object]] = {}
    for raw in raw_overrides:
        _insert(tree, parse_override(raw))
    return config.with_overrides(tree)


__all__ = [
    "CoercedValue",
    "ConfigOverride",
    "apply_overrides",
    "coerce_value",
    "parse_override",
]
