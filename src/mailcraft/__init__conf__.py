"""Static package metadata and the ``info`` command output.

Values are kept in sync with ``pyproject.toml``; the layered-config
identifiers decide where configuration files are searched on each platform.
"""

from __future__ import annotations

name = "mailcraft"
title = "Immutable email builder and SMTP transport configuration"
version = "1.0.0"
homepage = "https://github.com/mailcraft/mailcraft"
author = "mailcraft contributors"
shell_command = "mailcraft"

#: lib_layered_config identifiers (vendor/app for macOS + Windows, slug for XDG).
LAYEREDCONF_VENDOR = "mailcraft"
LAYEREDCONF_APP = "mailcraft"
LAYEREDCONF_SLUG = "mailcraft"


def print_info() -> None:
    """Print the summarised metadata block.

    Example:
        >>> print_info()  # doctest: +ELLIPSIS
        Info for mailcraft:
        ...
    """
    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("homepage", homepage),
        ("author", author),
        ("shell_command", shell_command),
    ]
    pad = max(len(label) for label, _ in fields)
    lines = [f"Info for {name}:", ""]
    lines.extend(f"    {label.ljust(pad)} = {value}" for label, value in fields)
    print("\n".join(lines))
