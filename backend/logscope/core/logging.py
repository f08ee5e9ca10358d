# logscope/core/logging.py
"""
Process-wide logging setup.

Analysis modules only ever call `logging.getLogger(__name__)`; nothing below
`logscope.core` attaches handlers. `configure_logging()` is called once from
the application startup hook (and may be called again, e.g. from tests).

Per-line parse misses are logged at DEBUG, so running at DEBUG on a large
upload is noisy by nature. Third-party loggers that chatter on every upload
are held at WARNING unless the whole process runs at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from typing import Tuple

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# python-multipart logs every form part it parses.
NOISY_LOGGERS: Tuple[str, ...] = ("multipart", "multipart.multipart", "python_multipart")


def resolve_level(level: str | int | None) -> int:
    """Map "debug" / "INFO" / 10 to a logging level; unknown names give INFO."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName((level or "INFO").strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str | int = "INFO") -> None:
    """
    Install a single stdout handler on the root logger.

    Existing root handlers are replaced, so repeated calls never duplicate
    output.
    """
    log_level = resolve_level(level)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    logging.getLogger("logscope").setLevel(log_level)
    quiet = log_level if log_level <= logging.DEBUG else max(log_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
