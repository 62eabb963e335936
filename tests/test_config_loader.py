"""Layered configuration loading and the bundled defaults."""

from __future__ import annotations

import lib_layered_config
import pytest

from mailcraft.adapters.config.loader import get_config, get_default_config_path, validate_profile
from mailcraft.adapters.mail.config import load_email_defaults_from_dict, load_mailer_config_from_dict
from mailcraft.domain.transport_strategy import TransportStrategy


@pytest.mark.os_agnostic
def test_default_config_file_ships_with_the_package() -> None:
    """defaultconfig.toml sits next to the loader."""
    path = get_default_config_path()

    assert path.name == "defaultconfig.toml"
    assert path.is_file()


@pytest.mark.os_agnostic
def test_bundled_defaults_load_into_valid_models(clear_config_cache: None) -> None:
    """Empty strings in the defaults mean 'not configured'."""
    data = get_config().as_dict()

    mailer = load_mailer_config_from_dict(data)
    assert mailer.transport_strategy is TransportStrategy.SMTP
    assert mailer.proxy_bridge_port == 1080
    assert mailer.session_timeout_ms == 60_000
    assert load_email_defaults_from_dict(data).recipients == ()


@pytest.mark.os_agnostic
def test_logging_defaults_name_the_service(clear_config_cache: None) -> None:
    """The [lib_log_rich] section tags logs with the package name."""
    section = get_config().get("lib_log_rich", default={})

    assert section["service"] == "mailcraft"


@pytest.mark.os_agnostic
def test_get_config_is_cached(clear_config_cache: None) -> None:
    """Repeated calls return the same object until the cache is cleared."""
    first = get_config()

    assert get_config() is first
    get_config.cache_clear()
    assert get_config() is not first


@pytest.mark.os_agnostic
@pytest.mark.parametrize("profile", ["../etc", "a/b"])
def test_invalid_profiles_are_rejected(profile: str, clear_config_cache: None) -> None:
    """Profile names cannot walk out of the configuration directories."""
    with pytest.raises(ValueError):
        get_config(profile=profile)


@pytest.mark.os_agnostic
def test_invalid_profile_raises_the_layered_config_validation_error() -> None:
    """The library's ValidationError surfaces unchanged and is still a ValueError."""
    with pytest.raises(lib_layered_config.ValidationError) as raised:
        validate_profile("../etc")

    assert isinstance(raised.value, ValueError)


@pytest.mark.os_agnostic
def test_valid_profile_names_pass() -> None:
    """Letters, digits, dashes and underscores are fine."""
    validate_profile("staging-eu_1")
