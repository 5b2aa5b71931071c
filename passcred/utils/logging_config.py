"""
Logging configuration using structlog.

stdout belongs to the credential_process JSON contract, so every log line
goes to stderr. Debug mode lowers the level to DEBUG; in every mode the
redaction processor runs before rendering.
"""

import sys
from collections.abc import Iterable
from typing import TextIO

import structlog

from passcred.utils.redaction import EventRedactor


def configure_logging(
    debug: bool = False,
    path_prefixes: Iterable[str] | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure structured logging to stderr.

    Args:
        debug: Emit DEBUG and INFO lines (otherwise WARNING and above only)
        path_prefixes: Password-store prefixes whose lookup paths are redacted
        stream: Output stream (default: ``sys.stderr``)
    """
    log_level = "DEBUG" if debug else "WARNING"

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            # Last step before rendering, so nothing bypasses it
            EventRedactor(path_prefixes),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )

