"""Logging setup for stage-wise adjustment runs."""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"


def setup_logger(
    log_path: str | Path,
    logger_name: str = "stagewise",
    level: int = logging.INFO,
    stream: bool = True,
) -> logging.Logger:
    """Route a named logger to `log_path` (truncated) and, optionally, stderr.

    Handlers attached by an earlier call are closed and replaced, so repeated
    runs in one session write each record once.
    """
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    fh = logging.FileHandler(path, mode="w", encoding="utf-8")
    fh.setFormatter(formatter)
    logger.addHandler(fh)
    if stream:
        sh = logging.StreamHandler()
        sh.setFormatter(formatter)
        logger.addHandler(sh)
    return logger
