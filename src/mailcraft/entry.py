"""``mailcraft`` console script.

Lives at package level so the adapters layer never imports the composition
root; the production services are wired here and handed to the CLI.
"""

from __future__ import annotations

from .adapters.cli.main import main as cli_main
from .composition import build_production


def main() -> int:
    """Run the CLI with SMTP, the proxy bridge and layered configuration wired in."""
    return cli_main(services_factory=build_production)


__all__ = ["main"]
