"""
Logging configuration for the agent monitor.

One logger tree (``agent_monitor``), two destinations:
  - Console (stderr): DEBUG if --verbose, WARNING+ otherwise
  - File (optional): always DEBUG, one file per server run in
    ``<data dir>/logs/``

Format: "timestamp | level | name | session_id | message"

Config console_format options:
  - "full"   : same structured format as the file handler
  - "simple" : (default) bare messages for DEBUG/INFO, [LEVEL] prefix for WARNING+
  - "clean"  : no console output at all (file logging still active)

Many sessions run at once, so the session id is passed per call with
``extra=for_session(sid)`` rather than held globally.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from config import get_data_dir

LOGGER_NAME = "agent_monitor"

_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(session_id)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_current_log_file: Optional[Path] = None


def get_log_dir() -> Path:
    return get_data_dir() / "logs"


def for_session(session_id: str) -> dict:
    """Return ``extra`` dict for logger calls: ``logger.info("...", extra=for_session(sid))``."""
    return {"session_id": session_id}


class _SessionFilter(logging.Filter):
    """Guarantees every record has a session_id attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "session_id", None):
            record.session_id = "-"
        return True


class _ConsoleFormatter(logging.Formatter):
    """Console formatter: shows [LEVEL] prefix only for WARNING and above.

    Session-scoped records get a short ``[sid]`` prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        sid = getattr(record, "session_id", "-")
        prefix = f"[{sid}] " if sid and sid != "-" else ""
        if record.levelno >= logging.WARNING:
            text = f"  [{record.levelname}] {prefix}{record.getMessage()}"
        else:
            text = f"  {prefix}{record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def setup_logging(verbose: bool = False) -> logging.Logger:
    """Configure console logging for the monitor.

    A file handler is added later by ``attach_log_file()``.

    Args:
        verbose: If True, show DEBUG level on console; otherwise WARNING+.

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    # Clear existing handlers (in case of re-init)
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(_SessionFilter())

    import config as _config
    console_format = _config.get("console_format", "simple")

    if console_format != "clean":
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
        console_handler.addFilter(_SessionFilter())
        if console_format == "full":
            console_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
        else:
            console_handler.setFormatter(_ConsoleFormatter())
        logger.addHandler(console_handler)
    # "clean": no console handler at all

    return logger


def attach_log_file(log_dir: Optional[Path] = None) -> Path:
    """Attach a file handler for this server run and return its path."""
    global _current_log_file
    log_dir = log_dir or get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"monitor_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
    _current_log_file = log_file

    logger = logging.getLogger(LOGGER_NAME)
    # Remove any existing file handler (e.g. after a reload)
    logger.handlers = [h for h in logger.handlers if not isinstance(h, logging.FileHandler)]

    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.addFilter(_SessionFilter())
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(file_handler)

    logger.info("=" * 60)
    logger.info(f"Monitor started at {datetime.now().isoformat()}")
    logger.info(f"Log file: {log_file}")
    return log_file


def get_logger() -> logging.Logger:
    """Get the monitor logger instance.

    Returns:
        The agent_monitor logger (creates with defaults if not configured)
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        # Not configured yet, set up with defaults
        return setup_logging(verbose=False)
    return logger


def get_current_log_path() -> Optional[Path]:
    """Return the path of the attached log file, if any."""
    return _current_log_file
