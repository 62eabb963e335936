"""Logging adapter: one lib_log_rich runtime per process.

Contents:
    * :func:`.setup.init_logging` - Idempotent runtime initialisation
    * :func:`.setup.build_runtime_config` - ``[lib_log_rich]`` to RuntimeConfig
"""

from __future__ import annotations

from .setup import build_runtime_config, init_logging

__all__ = ["build_runtime_config", "init_logging"]
