"""Logging configuration for tandem CLI."""

import logging
from enum import IntEnum
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

AUDIT_LOGGER = "tandem.audit"
AUDIT_FORMAT = "%(asctime)s %(levelname)s %(message)s"


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def _resolve_level(verbosity: int, quiet: bool, debug: bool) -> int:
    if quiet:
        return LogLevel.QUIET
    if debug or verbosity >= 1:
        return LogLevel.VERBOSE
    return LogLevel.NORMAL


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO | None = None,
    debug: bool = False,
    audit_log: Path | None = None,
) -> Console:
    """Configure logging based on CLI options.

    Args:
        verbosity: Number of -v flags (0=normal, 1+=debug)
        quiet: Suppress non-error output (takes precedence over debug/verbosity)
        no_color: Disable colored output
        stream: Output stream for the console (defaults to the current stderr)
        debug: Enable debug logging with timestamps and source paths
        audit_log: Optional file receiving coordination audit events
            (lock acquisition, takeover, ownership stamps)

    Returns:
        Configured Rich console for output
    """
    level = _resolve_level(verbosity, quiet, debug)
    detailed = debug or verbosity >= 2

    console = Console(
        file=stream,
        stderr=True,
        force_terminal=not no_color,
        no_color=no_color,
    )

    handler = RichHandler(
        console=console,
        show_time=detailed,
        show_path=detailed,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    if audit_log is not None:
        audit_log.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(audit_log, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(AUDIT_FORMAT))
        audit = logging.getLogger(AUDIT_LOGGER)
        for existing in [h for h in audit.handlers if isinstance(h, logging.FileHandler)]:
            audit.removeHandler(existing)
            existing.close()
        audit.setLevel(logging.INFO)
        audit.addHandler(file_handler)
        # Audit lines go to the file only, not the console
        audit.propagate = False

    return console


def audit(event: str, **fields: object) -> None:
    """Record a coordination event on the audit logger."""
    details = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
    logging.getLogger(AUDIT_LOGGER).info("%s %s", event, details)
