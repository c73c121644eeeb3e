"""Utility modules for matchfeed."""

from .alerting import AlertLevel, AlertManager, get_alert_manager, set_alert_manager
from .logging_utils import JsonFormatter, LoggerAdapter, setup_logging
from .text import normalize_marker, slugify

__all__ = [
    'AlertLevel',
    'AlertManager',
    'get_alert_manager',
    'set_alert_manager',
    'JsonFormatter',
    'LoggerAdapter',
    'setup_logging',
    'normalize_marker',
    'slugify',
]
