"""Logging and timing helpers shared by the CLI and the pipeline.

All log output goes to stderr; stdout is reserved for the CLI's
``Video created: <path>`` line.
"""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_COLORS = {
    "DEBUG": "\033[90m",  # grey
    "INFO": "\033[36m",  # cyan
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[1;31m",  # bold red
}
_RESET = "\033[0m"


class _ColorFormatter(logging.Formatter):
    """Formatter producing ``[HH:MM:SS] LEVEL    module: message``.

    Parameters
    ----------
    use_color : bool
        Wrap the level tag in ANSI colours.  Off when stderr is not a
        terminal.
    """

    def __init__(self, use_color: bool = True) -> None:
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S")
        color = _COLORS.get(record.levelname, "") if self.use_color else ""
        reset = _RESET if color else ""
        source = record.name.rpartition(".")[2]
        line = f"{color}[{ts}] {record.levelname:<8}{reset} {source}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure the root logger to write to stderr.

    Parameters
    ----------
    verbose : bool
        If ``True``, set level to ``DEBUG``; otherwise ``INFO``.

    Returns
    -------
    logging.Logger
        The root logger.
    """
    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_ColorFormatter(use_color=sys.stderr.isatty()))

    root = logging.getLogger()
    root.setLevel(level)
    # Avoid duplicate handlers on re-init
    root.handlers.clear()
    root.addHandler(handler)
    return root


class Timer:
    """Context-manager stopwatch for one pipeline stage.

    On exit the elapsed time is stored in :attr:`elapsed` and, when a
    ``label`` is given, logged at INFO as ``"<label> stage took N.NNs"``.
    The time is recorded even if the block raises.
    """

    def __init__(self, label: str = "", log: logging.Logger | None = None) -> None:
        self.label = label
        self._log = log or logger
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *_: object) -> None:
        self.elapsed = time.perf_counter() - self._start
        if self.label:
            self._log.info("%s stage took %.2fs", self.label, self.elapsed)
