"""CLI entry point shared by the console script and ``python -m mailcraft``.

Contents:
    * :func:`main` - Run the CLI and return its exit code.
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

import click as _click
import lib_cli_exit_tools
import lib_log_rich.runtime

from ... import __init__conf__
from .constants import TRACEBACK_SUMMARY_LIMIT, TRACEBACK_VERBOSE_LIMIT
from .context import apply_traceback_preferences, restore_traceback_state, snapshot_traceback_state

if TYPE_CHECKING:
    from ...composition import AppServices


def _report(exc: BaseException) -> int:
    verbose = bool(getattr(lib_cli_exit_tools.config, "traceback", False))
    apply_traceback_preferences(verbose)
    limit = TRACEBACK_VERBOSE_LIMIT if verbose else TRACEBACK_SUMMARY_LIMIT
    lib_cli_exit_tools.print_exception_message(trace_back=verbose, length_limit=limit)
    return lib_cli_exit_tools.get_system_exit_code(exc)


def _run_cli(argv: Sequence[str] | None, *, services_factory: Callable[[], AppServices]) -> int:
    from .root import cli

    # lib_cli_exit_tools.run_cli cannot pass ``obj``, so its handling is reproduced here.
    try:
        cli.main(
            args=list(argv) if argv is not None else sys.argv[1:],
            prog_name=__init__conf__.shell_command,
            obj=services_factory,
            standalone_mode=False,
        )
    except _click.exceptions.Exit as exc:
        return exc.exit_code
    except _click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except BaseException as exc:  # CLI boundary: SystemExit and KeyboardInterrupt included
        return _report(exc)
    return 0


def main(
    argv: Sequence[str] | None = None,
    *,
    restore_traceback: bool = True,
    services_factory: Callable[[], AppServices] | None = None,
) -> int:
    """Run the CLI and return its exit code.

    Args:
        argv: Arguments without the program name; None reads ``sys.argv``.
        restore_traceback: Restore the caller's traceback flags afterwards.
        services_factory: ``build_production`` or ``build_testing``.

    Raises:
        ValueError: When ``services_factory`` is missing.

    Example:
        >>> from mailcraft.composition import build_testing
        >>> main(["--version"], services_factory=build_testing)  # doctest: +ELLIPSIS
        mailcraft version ...
        0
    """
    if services_factory is None:
        raise ValueError("services_factory is required. Pass build_production from the composition layer.")

    previous_state = snapshot_traceback_state()
    try:
        return _run_cli(argv, services_factory=services_factory)
    finally:
        if restore_traceback:
            restore_traceback_state(previous_state)
        # Shutting down from a worker thread would end logging for the whole process.
        if threading.current_thread() is threading.main_thread() and lib_log_rich.runtime.is_initialised():
            lib_log_rich.runtime.shutdown()


__all__ = ["main"]
