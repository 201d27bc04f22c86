"""Logging setup for runbench.

Everything runbench reports while it works goes through the ``runbench``
logger to stderr, so a timed command's own stdout is never interleaved
with harness diagnostics.  A file handler can additionally capture the
full DEBUG trace of a run.
"""

from __future__ import annotations

import logging
from pathlib import Path

_LOGGER_NAME = "runbench"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(message)s"


def console_level(verbosity: int) -> int:
    """Map a ``-v`` count to a console log level.

    0 shows only warnings and errors, 1 adds the per-run command echo,
    2 or more shows scheduler debug output.
    """
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    *,
    verbosity: int = 0,
    log_file: Path | None = None,
) -> logging.Logger:
    """Configure and return the root runbench logger.

    Args:
        verbosity: Number of ``-v`` flags given on the command line.
        log_file: If provided, add a file handler at DEBUG level to this path.

    Returns:
        The configured root logger for runbench.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    # Remove any existing handlers to allow reconfiguration.
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(console_level(verbosity))
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(fh)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a named child logger under the runbench namespace."""
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")
