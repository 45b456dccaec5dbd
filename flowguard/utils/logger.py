# flowguard/utils/logger.py
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler


ROOT_LOGGER = "flowguard"

_FMT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_COLORS = (
    (logging.ERROR, "\033[91m"),    # red
    (logging.WARNING, "\033[93m"),  # yellow
    (logging.INFO, "\033[92m"),     # green
)


def env_level(default: str = "INFO") -> int:
    """Resolve the level from FLOWGUARD_LOG_LEVEL, then LOG_LEVEL."""
    name = os.getenv("FLOWGUARD_LOG_LEVEL") or os.getenv("LOG_LEVEL") or default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


class _ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not sys.stderr.isatty():
            return base
        for threshold, color in _COLORS:
            if record.levelno >= threshold:
                return f"{color}{base}\033[0m"
        return base


def init_logger(
    name: str = ROOT_LOGGER,
    level: int | None = None,
    log_dir: str | Path | None = None,
    file_name: str = "flowguard.log",
    file_max_mb: int = 5,
    file_backup: int = 3,
) -> logging.Logger:
    """
    Initialize the project logger:
      - colored stream handler on stderr (stdout carries CLI reports)
      - optional rotating file handler
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(level if level is not None else env_level())

    sh = logging.StreamHandler(sys.stderr)
    sh.setFormatter(_ColorFormatter(fmt=_FMT, datefmt=_DATEFMT))
    logger.addHandler(sh)

    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(
            filename=str(log_dir / file_name),
            maxBytes=file_max_mb * 1024 * 1024,
            backupCount=file_backup,
            encoding="utf-8",
        )
        fh.setFormatter(logging.Formatter(fmt=_FMT, datefmt=_DATEFMT))
        logger.addHandler(fh)

    return logger


def set_level(level: int) -> None:
    """Change the level of the project logger (e.g. for --verbose)."""
    logging.getLogger(ROOT_LOGGER).setLevel(level)


# Convenience default logger
log = init_logger(log_dir=os.getenv("FLOWGUARD_LOG_DIR"))


def get_logger(child: str) -> logging.Logger:
    """Create/get a child logger under the root project logger."""
    return logging.getLogger(ROOT_LOGGER).getChild(child)
