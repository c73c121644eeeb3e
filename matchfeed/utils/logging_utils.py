"""Logging setup for matchfeed.

Modules log through ``logging.getLogger(__name__)``; everything lives under
the ``matchfeed`` logger, which ``setup_logging`` configures once at startup.
"""
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "matchfeed"
DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
))


class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-10-19T10:30:00.123Z",
            "level": "INFO",
            "logger": "matchfeed.scheduler",
            "message": "Published full snapshot",
            "function": "run_cycle",
            "line": 120,
            "kind": "full"
        }

    Attributes passed through ``extra=`` are included as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat() + 'Z',
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
            "module": record.module,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value
        return json.dumps(log_data, default=str)


def setup_logging(
    name: str = ROOT_LOGGER,
    log_dir: Optional[str] = "logs",
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    json_format: bool = False,
    date_suffix: Optional[str] = None
) -> logging.Logger:
    """
    Configure logging to console and, optionally, a date-specific log file.

    Args:
        name: Logger name
        log_dir: Directory for log files; None disables the file handler
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string for the console
        json_format: Write the log file as JSON lines
        date_suffix: Optional date suffix for log filename (e.g., '20260101')

    Returns:
        Configured logger instance
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers = []

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(JsonFormatter() if json_format else formatter)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    log_file = None
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        suffix = date_suffix or datetime.now().strftime('%Y%m%d')
        extension = "json" if json_format else "log"
        log_file = Path(log_dir) / f"{name}_{suffix}.{extension}"
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(JsonFormatter() if json_format else formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    if log_file:
        logger.info(f"Logging initialized. Log file: {log_file}")
    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that prefixes messages with context.

    Usage:
        logger = LoggerAdapter(base_logger, {'source': 'England/Premier League'})
        logger.info("Extracting")
    """

    def process(self, msg, kwargs):
        if self.extra:
            context = ' | '.join(f"{k}={v}" for k, v in self.extra.items())
            msg = f"[{context}] {msg}"
        return msg, kwargs
