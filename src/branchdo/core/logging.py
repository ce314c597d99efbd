"""
structlog setup.

The list screen owns the terminal, so log events never go to stdout or
stderr.  They are appended as JSON lines to ``~/.branchdo/branchdo.log``
(or ``[logging] path`` from the config).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

import structlog

_log_file: TextIO | None = None


def configure_logging(level: str = "WARNING", path: Path | None = None) -> None:
    """Configure structlog once for the process.

    Safe to call more than once; the previous log file handle is closed.
    """
    global _log_file

    levelno = logging.getLevelNamesMapping().get(level.upper(), logging.WARNING)

    if _log_file is not None:
        _log_file.close()
        _log_file = None

    if path is not None:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        _log_file = path.open("a", encoding="utf-8")
        factory = structlog.WriteLoggerFactory(file=_log_file)
    else:
        factory = structlog.PrintLoggerFactory()  # type: ignore[assignment]

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(levelno),
        logger_factory=factory,
        cache_logger_on_first_use=False,
    )
