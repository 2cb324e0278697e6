"""
Logging setup and per-run job statistics.

Console records go to stderr, through rich when it is enabled. An optional
log file always receives DEBUG records so a failed cell can be traced after
the fact.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator, Optional, Union

from rich.logging import RichHandler

from .console import console

DATE_FORMAT = "%H:%M:%S"

FORMATS = {
    "minimal": "%(levelname)s: %(message)s",
    "simple": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s %(name)s.%(funcName)s:%(lineno)d: %(message)s",
}


def _console_handler(use_rich: bool, format_style: str) -> logging.Handler:
    if use_rich:
        handler = RichHandler(
            console=console,
            show_path=format_style == "detailed",
            markup=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt=DATE_FORMAT))
        return handler

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(FORMATS[format_style], datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    use_rich: bool = True,
    format_style: str = "detailed"
) -> logging.Logger:
    """
    Configure the root logger, replacing any handlers installed before.

    Args:
        level: Console logging level, by name or number
        log_file: Optional file that receives every record from DEBUG up
        use_rich: Render console records with rich
        format_style: ``minimal``, ``simple`` or ``detailed``

    Returns:
        Configured root logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    root = logging.getLogger()
    root.handlers.clear()

    handler = _console_handler(use_rich, format_style)
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FORMATS["detailed"]))
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
        root.setLevel(logging.DEBUG)

    return root


@dataclass
class RunStats:
    """Outcome counts of one dispatch run."""

    operation: str
    succeeded: int = 0
    failed: int = 0
    duration: float = 0.0
    started: float = field(default_factory=time.perf_counter)

    def record(self, ok: bool) -> None:
        if ok:
            self.succeeded += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    @property
    def success_rate(self) -> float:
        return self.succeeded / self.total if self.total else 0.0


@contextmanager
def log_run_stats(
    operation: str,
    logger: Optional[logging.Logger] = None,
    level: int = logging.INFO
) -> Generator[RunStats, None, None]:
    """Log the start of ``operation`` and, on exit, how many jobs succeeded or failed."""
    logger = logger or logging.getLogger()
    stats = RunStats(operation)
    logger.log(level, f"Starting {operation}")

    try:
        yield stats
    except Exception as e:
        stats.duration = time.perf_counter() - stats.started
        logger.error(f"Aborted {operation} after {stats.duration:.2f}s: {e}")
        raise

    stats.duration = time.perf_counter() - stats.started
    logger.log(
        level,
        f"Finished {operation} in {stats.duration:.2f}s: "
        f"{stats.succeeded} succeeded, {stats.failed} failed",
    )
