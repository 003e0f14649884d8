"""
Process-wide logging for the CLI.

``setup_logging`` runs once from main.py; modules log through
``logging.getLogger(__name__)``.

At INFO the console shows one ``LEVEL: message`` line per progress
event, which is the provisioning transcript. DEBUG adds timestamps and
source locations. WORKSTATION_LOG_FILE mirrors everything to a file,
optionally at its own WORKSTATION_LOG_FILE_LEVEL.
"""

from __future__ import annotations

import logging
import sys

TRANSCRIPT_FORMAT = "%(levelname)s: %(message)s"
DETAIL_FORMAT = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d  %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name; unknown names mean INFO.
        log_file: Also write records to this file.
        log_file_level: Level for ``log_file``; defaults to ``level``.
    """
    console_level = _parse_level(level)
    detailed = console_level <= logging.DEBUG
    handlers = [
        _handler(
            logging.StreamHandler(sys.stderr),
            console_level,
            DETAIL_FORMAT if detailed else TRANSCRIPT_FORMAT,
            "%H:%M:%S" if detailed else None,
        )
    ]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(
            _handler(
                logging.FileHandler(log_file, encoding="utf-8"),
                file_level,
                DETAIL_FORMAT,
                "%Y-%m-%d %H:%M:%S",
            )
        )

    root = logging.getLogger()
    root.handlers[:] = handlers
    # The root must let through whatever the most verbose handler wants.
    root.setLevel(min(handler.level for handler in handlers))
    logging.raiseExceptions = False


def _handler(handler: logging.Handler, level: int, fmt: str, datefmt: str | None) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to number; None or unknown names give INFO."""
    value = getattr(logging, level.upper(), None) if level else None
    return value if isinstance(value, int) else logging.INFO
