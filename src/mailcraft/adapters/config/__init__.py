"""Configuration adapter - loading, overrides and display.

Contents:
    * :mod:`.loader` - Cached layered configuration loading
    * :mod:`.overrides` - CLI ``--set`` override parsing and application
    * :mod:`.display` - Configuration and session display in human/JSON formats
"""

from __future__ import annotations

from .display import display_config, display_session
from .loader import get_config, get_default_config_path
from .overrides import apply_overrides

__all__ = [
    "apply_overrides",
    "display_config",
    "display_session",
    "get_config",
    "get_default_config_path",
]
