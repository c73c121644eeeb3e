"""
Alerting for refresh failures and source drift.

Supports alerts via:
- Logging (always on)
- Telegram Bot (when TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID are set)

Usage:
    from matchfeed.utils.alerting import get_alert_manager

    get_alert_manager().alert_source_drift(
        kind="full",
        degraded=["England/Premier League"],
        total=10,
    )
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class AlertLevel(Enum):
    """Alert severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LEVEL_PRIORITY = {
    AlertLevel.INFO: 1,
    AlertLevel.WARNING: 2,
    AlertLevel.ERROR: 3,
    AlertLevel.CRITICAL: 4,
}


@dataclass
class Alert:
    """Represents an alert message."""
    level: AlertLevel
    title: str
    message: str
    context: Optional[Dict[str, Any]] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Convert alert to dictionary."""
        return {
            "level": self.level.value,
            "title": self.title,
            "message": self.message,
            "context": self.context or {},
            "timestamp": self.timestamp.isoformat() if self.timestamp else None
        }

    def to_string(self) -> str:
        """Convert alert to human-readable string."""
        context_str = ""
        if self.context:
            context_str = f"\nContext: {json.dumps(self.context, indent=2, default=str)}"
        return f"[{self.level.value.upper()}] {self.title}\n{self.message}{context_str}"


class AlertChannel:
    """Base class for alert channels."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def send(self, alert: Alert) -> bool:
        """
        Send an alert through this channel.

        Args:
            alert: Alert to send

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            return False

        try:
            return self._send_impl(alert)
        except Exception as e:
            logger.error(f"Failed to send alert through {self.__class__.__name__}: {e}")
            return False

    def _send_impl(self, alert: Alert) -> bool:
        """Implementation-specific send logic. Override in subclasses."""
        raise NotImplementedError


class LoggingChannel(AlertChannel):
    """Alert channel that logs to the application logger."""

    def _send_impl(self, alert: Alert) -> bool:
        level_map = {
            AlertLevel.INFO: logger.info,
            AlertLevel.WARNING: logger.warning,
            AlertLevel.ERROR: logger.error,
            AlertLevel.CRITICAL: logger.critical
        }
        log_func = level_map.get(alert.level, logger.info)
        log_func(f"ALERT: {alert.title} - {alert.message}")

        if alert.context:
            logger.debug(f"Alert context: {json.dumps(alert.context, indent=2, default=str)}")
        return True


class TelegramChannel(AlertChannel):
    """Alert channel that sends messages via Telegram Bot."""

    def __init__(self, bot_token: str, chat_id: str, enabled: bool = True, timeout: float = 10):
        super().__init__(enabled)
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.api_url = f"https://api.telegram.org/bot{bot_token}"

    def _send_impl(self, alert: Alert) -> bool:
        if not self.bot_token or not self.chat_id:
            logger.warning("Telegram bot token or chat ID not configured")
            return False

        message = f"<b>[{alert.level.value.upper()}] {alert.title}</b>\n\n{alert.message}"
        if alert.context:
            message += "\n\n<b>Details:</b>\n"
            for key, value in alert.context.items():
                message += f"  - <b>{key}:</b> {value}\n"

        payload = {
            "chat_id": self.chat_id,
            "text": message,
            "parse_mode": "HTML"
        }

        try:
            response = requests.post(f"{self.api_url}/sendMessage", json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to send Telegram alert: {e}")
            return False

        if response.status_code == 200:
            logger.info(f"Telegram alert sent to chat {self.chat_id}")
            return True
        logger.error(f"Telegram API error ({response.status_code}): {response.text}")
        return False


class AlertManager:
    """Manages alert channels and sends alerts."""

    def __init__(
        self,
        channels: Optional[List[AlertChannel]] = None,
        min_level: AlertLevel = AlertLevel.WARNING,
        load_env: bool = True
    ):
        """
        Initialize alert manager.

        Args:
            channels: Alert channels. If None, logging only.
            min_level: Minimum alert level to send
            load_env: Add channels configured through environment variables
        """
        self.min_level = min_level
        self.channels = list(channels) if channels is not None else [LoggingChannel()]
        if load_env:
            self._load_config()

    def _load_config(self):
        """Load alert channels from environment variables."""
        telegram_bot_token = os.getenv('TELEGRAM_BOT_TOKEN')
        telegram_chat_id = os.getenv('TELEGRAM_CHAT_ID')

        if telegram_bot_token and telegram_chat_id:
            self.channels.append(TelegramChannel(bot_token=telegram_bot_token, chat_id=telegram_chat_id))
            logger.info(f"Telegram alerts enabled for chat {telegram_chat_id}")
        elif telegram_bot_token or telegram_chat_id:
            logger.warning("Partial Telegram configuration: both TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID required")

    def send_alert(
        self,
        level: AlertLevel,
        title: str,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Send an alert through all configured channels.

        Returns:
            True if at least one channel succeeded, False otherwise
        """
        if _LEVEL_PRIORITY.get(level, 0) < _LEVEL_PRIORITY.get(self.min_level, 0):
            return False

        alert = Alert(level=level, title=title, message=message, context=context)
        results = [channel.send(alert) for channel in self.channels]

        success = any(results)
        if not success:
            logger.warning(f"Alert '{title}' failed to send through all channels")
        return success

    def alert_source_drift(
        self,
        kind: str,
        degraded: List[str],
        total: int,
        context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """Many sources failed or came back empty in one build.

        Usually means the site markup changed under the selectors.
        """
        full_context = {
            "snapshot": kind,
            "degraded_sources": len(degraded),
            "total_sources": total,
            "sample": ", ".join(degraded[:5]),
            "alert_type": "source_drift"
        }
        if context:
            full_context.update(context)

        return self.send_alert(
            level=AlertLevel.ERROR,
            title=f"Source drift: {kind} snapshot",
            message=f"{len(degraded)} of {total} sources failed or returned no matches",
            context=full_context
        )

    def alert_cycle_failure(
        self,
        kind: str,
        error: str,
        context: Optional[Dict[str, Any]] = None
    ) -> bool:
        """A refresh cycle produced nothing; the previous snapshot stays published."""
        full_context = {
            "snapshot": kind,
            "error": error,
            "alert_type": "cycle_failure"
        }
        if context:
            full_context.update(context)

        return self.send_alert(
            level=AlertLevel.CRITICAL,
            title=f"Refresh failed: {kind} snapshot",
            message=f"Refresh cycle for the {kind} snapshot failed: {error}",
            context=full_context
        )


_global_alert_manager: Optional[AlertManager] = None


def get_alert_manager() -> AlertManager:
    """Get or create the global alert manager instance."""
    global _global_alert_manager
    if _global_alert_manager is None:
        _global_alert_manager = AlertManager()
    return _global_alert_manager


def set_alert_manager(manager: Optional[AlertManager]):
    """Set (or with None, reset) the global alert manager instance."""
    global _global_alert_manager
    _global_alert_manager = manager
