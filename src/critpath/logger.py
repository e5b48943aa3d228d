"""Scheduler logging with verbosity levels between the standard ones.

Verbosity 1 reports what the scheduler had to change or ignore (dropped
edges, conflicts), verbosity 2 adds the dates each pass computes, and
verbosity 3 adds every dependency bound considered.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # INFO < changes < WARNING
CHECKS_LEVEL = 15  # DEBUG < checks < INFO

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0
VERBOSITY_CHANGES = 1
VERBOSITY_CHECKS = 2
VERBOSITY_DEBUG = 3

# Indexed by verbosity
_LEVELS = (logging.ERROR, CHANGES_LEVEL, CHECKS_LEVEL, logging.DEBUG)


class CritpathLogger(logging.Logger):
    """Logger with one method per verbosity level.

    - changes(): dropped edges and scheduling conflicts
    - checks(): per-task dates from the forward and backward passes
    - debug(): individual dependency bounds
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> CritpathLogger:
    """Return the shared ``critpath`` logger."""
    logging.setLoggerClass(CritpathLogger)
    logger = logging.getLogger("critpath")
    assert isinstance(logger, CritpathLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Route scheduler messages up to ``verbosity`` to ``stream`` (stderr by default).

    Out-of-range verbosities are clamped to the nearest level. Calling this
    again replaces the previous handler.
    """
    verbosity = min(max(verbosity, VERBOSITY_SILENT), VERBOSITY_DEBUG)
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS[verbosity])

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def changes_enabled() -> bool:
    return get_logger().isEnabledFor(CHANGES_LEVEL)


def checks_enabled() -> bool:
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    return get_logger().isEnabledFor(logging.DEBUG)
