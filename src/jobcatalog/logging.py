"""Package logging for jobcatalog.

Every module logs through ``logging.getLogger(__name__)``.  Those loggers
are children of ``jobcatalog``, which owns the only handlers: a stderr
stream installed on import and, on request, a per-run log file.

Chroma and the HTTP client under ``ollama`` log every request at INFO;
:func:`quiet_dependencies` raises them to WARNING so an ingest of a few
thousand postings stays readable.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_DIR = "data/logs"
NOISY_LOGGERS = ("chromadb", "httpx", "httpcore")

logger = logging.getLogger("jobcatalog")
logger.setLevel(logging.INFO)


def _formatter() -> logging.Formatter:
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)


def _install_stderr_handler() -> logging.StreamHandler:
    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(logging.INFO)
    stream.setFormatter(_formatter())
    logger.addHandler(stream)
    return stream


stderr_handler = _install_stderr_handler()


def configure_file_logging(
    log_dir: str = DEFAULT_LOG_DIR,
    *,
    level: int = logging.INFO,
) -> logging.FileHandler:
    """Also write this run's log to ``<log_dir>/jobcatalog_<timestamp>.log``.

    The directory is created when missing.  The handler is returned so
    the caller can detach it with ``logger.removeHandler``.  Passing a
    level below the logger's own lowers the logger too, otherwise the
    records would never reach the file.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")

    file_handler = logging.FileHandler(directory / f"jobcatalog_{stamp}.log", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(_formatter())

    if level < logger.level:
        logger.setLevel(level)
    logger.addHandler(file_handler)
    logger.info("Writing log file %s", file_handler.baseFilename)
    return file_handler


def quiet_dependencies(level: int = logging.WARNING) -> None:
    """Raise the threshold of third-party loggers that chatter per request."""
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)


__all__ = ["configure_file_logging", "logger", "quiet_dependencies"]
