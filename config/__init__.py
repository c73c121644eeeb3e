"""Configuration system for matchfeed.

Usage:
    from config import MatchFeedConfig

    config = MatchFeedConfig()

All configuration classes provide sensible defaults and can be overridden
via config.yaml and environment variables. See .env.example for available options.
"""

from .base import (
    BaseConfig,
    LoggingConfig,
    RetryConfig,
)
from .matchfeed import (
    ApiConfig,
    BrowserConfig,
    MarkerConfig,
    MatchFeedConfig,
    SchedulerConfig,
    ScrollConfig,
    SelectorsConfig,
    SourceConfig,
    TimeoutConfig,
)

__all__ = [
    # Base classes
    'BaseConfig',
    'LoggingConfig',
    'RetryConfig',
    # Sections
    'ApiConfig',
    'BrowserConfig',
    'MarkerConfig',
    'SchedulerConfig',
    'ScrollConfig',
    'SelectorsConfig',
    'SourceConfig',
    'TimeoutConfig',
    # Crawler config
    'MatchFeedConfig',
]

__version__ = '1.0.0'
