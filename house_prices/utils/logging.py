"""Loguru setup and the small helpers the comparison logs through.

Every module logs with ``from loguru import logger``. This module only
installs the handlers and adds a ``grid`` extra field: while a family's
grid runs, each line is prefixed with ``[family/transform]`` so
interleaved raw and log sweeps stay readable.
"""

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from loguru import logger

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> | {extra[grid]}<level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {extra[grid]}{message}"


def setup_logging(
    level: LogLevel = "INFO",
    log_file: str | Path | None = None,
    colorize: bool = True,
) -> None:
    """Send pipeline logs to stderr and, optionally, to a run log file.

    Args:
        level: Minimum level for every handler.
        log_file: File that receives a plain-text copy of the run log.
        colorize: Colour the console output.
    """
    logger.remove()
    logger.configure(extra={"grid": ""})
    logger.add(sys.stderr, format=_CONSOLE_FORMAT, level=level, colorize=colorize)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(path), format=_FILE_FORMAT, level=level, rotation="10 MB")
        logger.info(f"Logging to file: {path}")


class LogContext:
    """Prefix every line logged inside the block with a grid label.

    Example:
        >>> with LogContext(family="random_forest", transform="raw"):
        ...     logger.info("fitting")  # "[random_forest/raw] fitting"
    """

    def __init__(self, **labels):
        self.labels = labels
        self._scope = None

    def __enter__(self):
        tag = "/".join(str(v) for v in self.labels.values())
        self._scope = logger.contextualize(grid=f"[{tag}] ", **self.labels)
        self._scope.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._scope is not None:
            self._scope.__exit__(exc_type, exc_val, exc_tb)
            self._scope = None
        return False


def log_model_metrics(
    model_name: str,
    r2: float,
    rmse: float | None = None,
    mae: float | None = None,
    **extra,
) -> None:
    """One INFO line with the hold-out scores of a fitted variant."""
    fields = {"model": model_name, "r2": f"{r2:.4f}"}
    for key, value in (("rmse", rmse), ("mae", mae)):
        if value is not None:
            fields[key] = f"{value:.4f}"
    fields.update(extra)
    logger.info("Model evaluation: " + ", ".join(f"{k}={v}" for k, v in fields.items()))


@dataclass
class ProgressLogger:
    """Logs grid progress each time another ``log_interval`` percent is done.

    Example:
        >>> progress = ProgressLogger(total=len(tasks), description="elastic_net/raw")
        >>> for task in tasks:
        ...     run(task)
        ...     progress.update()
        >>> progress.finish()
    """

    total: int
    description: str = "Progress"
    log_interval: int = 10
    current: int = field(default=0, init=False)
    _next_pct: int = field(default=0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._next_pct = self.log_interval

    def update(self, n: int = 1) -> None:
        self.current += n
        pct = 100 * self.current // self.total if self.total else 100
        if pct >= self._next_pct:
            logger.info(f"{self.description}: {pct}% ({self.current}/{self.total})")
            self._next_pct = (pct // self.log_interval + 1) * self.log_interval

    def finish(self) -> None:
        logger.info(f"{self.description}: complete ({self.total} cells)")


setup_logging(level="INFO")
