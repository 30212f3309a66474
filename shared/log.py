#!/usr/bin/env python3
"""
Jumble Clanker Logging Configuration

Centralized logging setup for consistent formatting across the project.
Every logger writes to the console (coloured on a dev terminal) and to
logs/clanker.log, with host/room/user/event context from `extra=`.

Usage:
    from shared.log import get_logger

    logger = get_logger(__name__)
    logger.info("Connecting...")
    logger.warning("Connect failed", extra={"host": "https://classic.talkomatic.co"})
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional
import os


# ========================================
#           LOGGING FORMATTERS
# ========================================

# Record attribute (from ``extra=``) -> prefix label
CONTEXT_FIELDS = (
    ("host", "host"),
    ("room_id", "room"),
    ("user_id", "user"),
    ("event", "event"),
)

class GenericFormatter(logging.Formatter):
    """Prefixes the message with whatever session context the record carries."""

    def context_of(self, record: logging.LogRecord) -> str:
        parts = []
        for attr, label in CONTEXT_FIELDS:
            if hasattr(record, attr):
                value = getattr(record, attr)
                parts.append(f"{label}={str(value)[:8] if attr == 'user_id' else value}")
        return " ".join(parts)

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy; the same record is passed to every handler
        record = logging.makeLogRecord(record.__dict__)
        context = self.context_of(record)
        if context:
            record.msg = f"[{context}] {record.msg}"
        self.decorate(record)
        return super().format(record)

    def decorate(self, record: logging.LogRecord) -> None:
        pass

class ColoredFormatter(GenericFormatter):
    """Colored level names for an interactive console"""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def decorate(self, record: logging.LogRecord) -> None:
        color = self.COLORS.get(record.levelname)
        if color:
            record.levelname = f"{color}{record.levelname}{self.RESET}"


# ========================================
#           LOGGING CONFIGURATION
# ========================================

_loggers_configured = set()

def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger for the given module.

    Args:
        name: Usually __name__ from the calling module
        level: Override log level ("DEBUG", "INFO", "WARNING", "ERROR")

    Returns:
        Configured logger instance

    Examples:
        logger = get_logger(__name__)
        logger.info("Session starting")

        # With context
        logger.warning("Join shape not acknowledged", extra={
            "host": "https://dev.talkomatic.co",
            "room_id": "734117",
            "event": "join room",
        })
    """
    logger = logging.getLogger(name)

    # Only configure each logger once
    if name not in _loggers_configured:
        _configure_logger(logger, level)
        _loggers_configured.add(name)

    return logger

def _configure_logger(logger: logging.Logger, level: Optional[str] = None) -> None:
    """Configure a logger with appropriate handlers and formatters"""

    log_level = _get_log_level(level)
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    # Colour on dev consoles only; the file log is always plain
    _add_console_handler(logger, colored=_is_development())
    _add_file_handler(logger)

    # Prevent duplicate messages from parent loggers
    logger.propagate = False

def _get_log_level(level: Optional[str] = None) -> int:
    """Determine appropriate log level"""

    if level:
        return getattr(logging, level.upper(), logging.INFO)

    env_level = os.getenv('CLANKER_LOG_LEVEL')
    if env_level:
        return getattr(logging, env_level.upper(), logging.INFO)

    # Default based on environment
    return logging.DEBUG if _is_development() else logging.INFO

def _is_development() -> bool:
    """Detect if we're in development mode"""
    return (
        os.getenv('PYTHON_ENV', '').lower() in ['dev', 'development'] or
        'pytest' in sys.modules
    )

def _add_console_handler(logger: logging.Logger, colored: bool = True) -> None:
    """Add console handler with appropriate formatter"""

    fmt = '[%(levelname)-8s][%(asctime)s][%(name)-5s]: %(message)s'
    handler = logging.StreamHandler(sys.stdout)

    if colored and _supports_color():
        formatter = ColoredFormatter(
            fmt=fmt,
            datefmt='%H:%M:%S'
        )
    else:
        formatter = GenericFormatter(
            fmt=fmt,
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

def _add_file_handler(logger: logging.Logger) -> None:
    """Add file handler for production logging"""

    log_dir = Path(os.getenv('CLANKER_LOG_DIR', 'logs'))
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / "clanker.log"
    handler = logging.FileHandler(log_file, encoding="utf-8")

    formatter = GenericFormatter(
        fmt='%(asctime)s | %(name)-30s | %(levelname)-8s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

def _supports_color() -> bool:
    """Colour only on a real terminal that is not TERM=dumb"""
    isatty = getattr(sys.stdout, "isatty", None)
    return bool(isatty and isatty()) and os.getenv("TERM", "") != "dumb"


# ========================================
#           CONVENIENCE FUNCTIONS
# ========================================

def configure_root_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the entire application.
    Call this once at application startup.

    Args:
        level: Root log level ("DEBUG", "INFO", "WARNING", "ERROR")
    """
    root_logger = logging.getLogger()
    _configure_logger(root_logger, level)

    # Module loggers were configured at import time; align their level too
    for name in _loggers_configured:
        logging.getLogger(name).setLevel(_get_log_level(level))
