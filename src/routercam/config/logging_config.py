"""Logging setup for applications embedding routercam.

The library modules only create loggers (``logging.getLogger(__name__)``);
they never attach handlers.  Applications call ``setup_logging`` once at
start-up.  Repeated calls replace the handlers installed by the previous
call instead of stacking new ones.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_installed: list[logging.Handler] = []


def setup_logging(
    level: str = "INFO",
    fmt: str = DEFAULT_FORMAT,
    log_file: Optional[Path] = None,
    capture_warnings: bool = True,
) -> list[logging.Handler]:
    """Configure the ``routercam`` logger hierarchy (idempotent).

    Parameters
    ----------
    level:
        Level name, e.g. ``"DEBUG"`` or ``"WARNING"``.
    fmt:
        ``logging.Formatter`` format string.
    log_file:
        Optional file that receives the same records as stderr.
    capture_warnings:
        Route ``warnings.warn`` messages (mesh problems) into logging.

    Returns the handlers that were installed.
    """
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level!r}")

    logger = logging.getLogger("routercam")
    warn_logger = logging.getLogger("py.warnings")
    for handler in _installed:
        logger.removeHandler(handler)
        warn_logger.removeHandler(handler)
        handler.close()
    _installed.clear()

    formatter = logging.Formatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _installed.append(handler)
    logger.setLevel(numeric)

    if capture_warnings:
        logging.captureWarnings(True)
        for handler in handlers:
            warn_logger.addHandler(handler)

    return list(handlers)
