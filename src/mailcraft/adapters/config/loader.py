"""Layered configuration loading for mailcraft.

Reads the bundled ``defaultconfig.toml`` plus the app, host and user files,
``.env`` and environment variables through ``lib_layered_config``. Results
are cached per ``(profile, start_dir)`` for the lifetime of the process.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Protocol, cast

from lib_layered_config import (
    DEFAULT_MAX_PROFILE_LENGTH,
    Config,
    read_config,
    validate_profile_name,
)

from ... import __init__conf__

_DEFAULT_CONFIG_FILE = "defaultconfig.toml"


class ConfigLoaderProtocol(Protocol):
    """Cached config loader that can be reset between tests."""

    def __call__(self, *, profile: str | None = None, start_dir: str | None = None) -> Config: ...
    def cache_clear(self) -> None: ...


def validate_profile(profile: str) -> None:
    """Reject profile names that could escape the configuration directories.

    Examples:
        >>> validate_profile("staging-v2")

        >>> validate_profile("../etc")  # doctest: +IGNORE_EXCEPTION_DETAIL
        Traceback (most recent call last):
        ...
        lib_layered_config.ValidationError: profile contains invalid characters: ../etc
    """
    validate_profile_name(profile, max_length=DEFAULT_MAX_PROFILE_LENGTH)


def get_default_config_path() -> Path:
    """Return the bundled defaults file shipped next to this module.

    Example:
        >>> get_default_config_path().name
        'defaultconfig.toml'
    """
    return Path(__file__).with_name(_DEFAULT_CONFIG_FILE)


@lru_cache(maxsize=4)
def _read_layers(profile: str | None, start_dir: str | None) -> Config:
    return read_config(
        vendor=__init__conf__.LAYEREDCONF_VENDOR,
        app=__init__conf__.LAYEREDCONF_APP,
        slug=__init__conf__.LAYEREDCONF_SLUG,
        profile=profile,
        default_file=get_default_config_path(),
        start_dir=start_dir,
    )


def _get_config(*, profile: str | None = None, start_dir: str | None = None) -> Config:
    """Load the merged configuration (defaults → app → host → user → dotenv → env).

    Args:
        profile: Optional profile name; inserts ``profile/<name>/`` into every
            configuration path so e.g. staging and production SMTP settings
            can live side by side.
        start_dir: Directory that seeds ``.env`` discovery; defaults to the
            current working directory.

    Raises:
        ValueError: When ``profile`` is not a valid profile name.

    Example:
        >>> config = get_config()
        >>> config.get("mailer", default={}).get("transport_strategy")
        'SMTP'
    """
    if profile is not None:
        validate_profile(profile)
    return _read_layers(profile, start_dir)


_get_config.cache_clear = _read_layers.cache_clear  # type: ignore[attr-defined]
get_config: ConfigLoaderProtocol = cast(ConfigLoaderProtocol, _get_config)


__all__ = [
    "get_config",
    "get_default_config_path",
    "validate_profile",
]
