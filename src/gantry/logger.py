"""Scheduling trace output for gantry.

The engines narrate their work on a single ``gantry`` logger at three depths:
what they decided (a task's dates moved, a task turned critical, a day took
overtime), what they weighed on the way (each predecessor edge, each
allocation day) and the raw pass values behind it (ES/EF/LS/LF per task).
The CLI's ``--verbose`` count selects the depth.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # Decisions: moved dates, critical tasks, plan totals
CHECKS_LEVEL = 15  # Considerations: per edge, per allocation day

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0  # Errors only
VERBOSITY_CHANGES = 1  # Date moves, critical tasks, allocation summaries
VERBOSITY_CHECKS = 2  # Every edge evaluated and every day planned
VERBOSITY_DEBUG = 3  # CPM pass values

_LEVELS = {
    VERBOSITY_SILENT: logging.ERROR,
    VERBOSITY_CHANGES: CHANGES_LEVEL,
    VERBOSITY_CHECKS: CHECKS_LEVEL,
    VERBOSITY_DEBUG: logging.DEBUG,
}


class GantryLogger(logging.Logger):
    """Logger with one method per trace depth.

    - changes(): a date was moved, a task became critical, a plan was summed up
    - checks(): an edge implied a date, a day was filled or pushed
    - debug(): early/late dates as the passes compute them
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a scheduling decision."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a constraint or day the engines considered."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> GantryLogger:
    """Return the shared ``gantry`` logger.

    Engine modules call this at import time; setup_logger() decides later
    what, if anything, reaches the output.
    """
    logging.setLoggerClass(GantryLogger)
    logger = logging.getLogger("gantry")
    assert isinstance(logger, GantryLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Route engine trace output to a stream at the given depth.

    Replaces any handler installed by an earlier call. Messages are written
    bare, one per line, so CLI tables and trace lines interleave cleanly.

    Args:
        verbosity: 0=errors, 1=decisions, 2=considerations, 3=pass values;
            unknown values fall back to errors only
        stream: Destination; defaults to sys.stderr
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Drop handlers and silence the logger between runs."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def changes_enabled() -> bool:
    """True when scheduling decisions are being traced."""
    return get_logger().isEnabledFor(CHANGES_LEVEL)


def checks_enabled() -> bool:
    """True when per-edge and per-day considerations are being traced."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    """True when CPM pass values are being traced."""
    return get_logger().isEnabledFor(logging.DEBUG)
