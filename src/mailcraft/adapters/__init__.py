"""Adapters layer - infrastructure and framework integrations.

Contents:
    * :mod:`.config` - Layered configuration loading, overrides and display
    * :mod:`.mail` - Configuration models, MIME codec, SMTP transport, proxy bridge
    * :mod:`.logging` - lib_log_rich runtime setup
    * :mod:`.memory` - In-memory adapters for tests
    * :mod:`.cli` - rich-click command-line interface
"""

from __future__ import annotations

__all__: list[str] = []
