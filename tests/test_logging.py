"""Tests for the [lib_log_rich] settings model and RuntimeConfig translation.

init_logging itself runs in every CLI test that uses the services_with_config
fixture.
"""

from __future__ import annotations

import pytest
from lib_layered_config import Config

from mailcraft import __init__conf__
from mailcraft.adapters.logging.setup import LoggingSettings, build_runtime_config


@pytest.mark.os_agnostic
def test_logging_settings_allow_extra_fields() -> None:
    """Unknown keys pass through for lib_log_rich RuntimeConfig."""
    parsed = LoggingSettings.model_validate({"service": "relay", "environment": "dev", "console_level": "DEBUG"})

    assert parsed.service == "relay"
    assert parsed.environment == "dev"
    assert parsed.model_dump(exclude={"service", "environment"}, exclude_none=True) == {"console_level": "DEBUG"}


@pytest.mark.os_agnostic
def test_logging_settings_defaults() -> None:
    """Empty input produces the production defaults."""
    parsed = LoggingSettings.model_validate({})

    assert parsed.service is None
    assert parsed.environment == "prod"


@pytest.mark.os_agnostic
def test_runtime_config_service_defaults_to_distribution_name() -> None:
    """Without [lib_log_rich].service, logs are tagged with the package name."""
    runtime_config = build_runtime_config(Config({}, {}))

    assert runtime_config.service == __init__conf__.name
    assert runtime_config.environment == "prod"


@pytest.mark.os_agnostic
def test_runtime_config_reads_the_section() -> None:
    """Service and environment come from the loaded configuration."""
    config = Config({"lib_log_rich": {"service": "mail-relay", "environment": "staging"}}, {})

    runtime_config = build_runtime_config(config)

    assert runtime_config.service == "mail-relay"
    assert runtime_config.environment == "staging"
