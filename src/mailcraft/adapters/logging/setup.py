"""lib_log_rich runtime initialisation shared by every entry point.

The runtime is configured from the ``[lib_log_rich]`` section, initialised
once per process, and standard library logging is attached to it so the
``logging.getLogger(__name__)`` loggers used across mailcraft end up in the
same pipeline. ``smtplib`` debug tracing (``mailer.debug = true``) prints to
stderr on its own and is not routed through here.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

import lib_log_rich.config
import lib_log_rich.runtime
from lib_layered_config import Config
from pydantic import BaseModel, ConfigDict

from ... import __init__conf__


class LoggingSettings(BaseModel):
    """``[lib_log_rich]`` section; unknown keys pass through to RuntimeConfig.

    Example:
        >>> LoggingSettings().environment
        'prod'
        >>> LoggingSettings.model_validate({"console_level": "DEBUG"}).model_extra
        {'console_level': 'DEBUG'}
    """

    model_config = ConfigDict(extra="allow")

    service: str | None = None
    environment: str = "prod"


def build_runtime_config(config: Config) -> lib_log_rich.runtime.RuntimeConfig:
    """Translate the loaded configuration into a lib_log_rich RuntimeConfig.

    The service name defaults to the distribution name.
    """
    section: Any = config.get("lib_log_rich", default={})
    settings = LoggingSettings.model_validate(dict(cast(Mapping[str, Any], section)) if section else {})
    passthrough = settings.model_dump(exclude={"service", "environment"}, exclude_none=True)
    return lib_log_rich.runtime.RuntimeConfig(
        service=settings.service or __init__conf__.name,
        environment=settings.environment,
        **passthrough,
    )


def init_logging(config: Config) -> None:
    """Initialise the lib_log_rich runtime once; later calls are no-ops.

    Loads ``.env`` first so ``LOG_*`` variables defined there take effect.

    Example:
        >>> init_logging(Config({"lib_log_rich": {"environment": "test"}}, {}))  # doctest: +SKIP
    """
    if lib_log_rich.runtime.is_initialised():
        return
    lib_log_rich.config.enable_dotenv()
    lib_log_rich.runtime.init(build_runtime_config(config))
    lib_log_rich.runtime.attach_std_logging()


__all__ = [
    "LoggingSettings",
    "build_runtime_config",
    "init_logging",
]
