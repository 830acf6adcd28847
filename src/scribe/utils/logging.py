"""Logging setup for the Scribe plugin and its headless runner."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "level_for"]

_DEFAULT_LOG_DIR = Path.home() / ".scribe" / "logs"
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_MAX_BYTES = 1_000_000
_BACKUP_COUNT = 3
# httpx logs every request line at INFO.
_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")
_LOG_PATH: Path | None = None


def level_for(debug: bool) -> int:
    return logging.DEBUG if debug else logging.INFO


def setup_logging(
    level: int = logging.INFO, *, log_dir: Path | str | None = None, force: bool = False
) -> Path:
    """Log to stderr and to a rotating ``scribe.log``; later calls need ``force`` to reconfigure."""

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    target_dir = Path(log_dir or os.environ.get("SCRIBE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / "scribe.log"

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"
        ),
        logging.StreamHandler(),
    ]
    logging.basicConfig(level=level, format=_LOG_FORMAT, handlers=handlers, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _LOG_PATH = log_path
    return log_path
