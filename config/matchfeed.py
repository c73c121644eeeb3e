"""
matchfeed crawler configuration.

Defaults below, overlaid by config.yaml, overlaid by environment variables
(.env file).
"""

import os
from dataclasses import dataclass, field
from typing import List

from .base import BaseConfig, LoggingConfig, RetryConfig, env_flag


@dataclass
class ScrollConfig:
    """Lazy-load scrolling for the aggregate "today" view."""
    quiet_window: float = 2.0
    poll_interval: float = 0.5
    max_iterations: int = 60


@dataclass
class TimeoutConfig:
    """Timeout configuration (seconds)."""
    page_load: int = 30
    element_wait: int = 10
    script_timeout: int = 30
    settle_quiet: float = 0.5
    settle_max: float = 10.0


@dataclass
class BrowserConfig:
    """Browser configuration for Selenium."""
    headless: bool = True
    window_size: str = "1920x1080"
    block_images: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class SelectorsConfig:
    """CSS selectors handed to the in-page extraction scripts."""
    content_ready: str = "table.table-main"
    row: str = "table.table-main tr"
    teams: str = "td.h-text-left a.in-match"
    date_cell: str = "td.table-main__datetime"
    odds_cell: str = "td.table-main__odds"
    status_cell: str = "td.table-main__eventStage"
    score_cell: str = "td.table-main__result"
    tournament_header: str = "th.h-text-left"
    live_filter: str = "a.js-live-filter"
    live_filter_active_class: str = "current"
    result_score: str = "p.list-details__item__score"


@dataclass
class MarkerConfig:
    """Source markers the normalizer classifies rows by."""
    live_class: str = "table-main__eventStage--live"
    winner_class: str = "result-ok"
    finished_markers: List[str] = field(default_factory=lambda: ["FT", "AET", "PEN"])
    dropped_markers: List[str] = field(default_factory=lambda: ["AWA", "CAN"])
    zone_label: str = "EST"
    offset_hours: int = 1


@dataclass
class SourceConfig:
    """Upstream site layout and the source list location."""
    base_url: str = "https://www.betexplorer.com"
    sport: str = "soccer"
    sources_file: str = "config/sources.yaml"
    today_path: str = "next/{sport}/"
    live_path: str = "{sport}/"
    resolve_unknown_results: bool = True
    max_result_lookups: int = 10


@dataclass
class SchedulerConfig:
    """Refresh cadence and drift alarm thresholds."""
    interval_seconds: float = 60.0
    full_refresh_every: int = 10
    drift_alarm_ratio: float = 0.5
    drift_min_sources: int = 4


@dataclass
class ApiConfig:
    """Read-side HTTP server."""
    host: str = "0.0.0.0"
    port: int = 8080


class MatchFeedConfig(BaseConfig):
    """
    matchfeed configuration.

    Usage:

        config = MatchFeedConfig()

        print(config.source.base_url)

        print(config.scheduler.interval_seconds)

    See .env.example for all available environment overrides.
    """

    def _load_config(self):
        """Initialize configuration with defaults."""
        self.browser = BrowserConfig()
        self.timeouts = TimeoutConfig()
        self.scroll = ScrollConfig()
        self.selectors = SelectorsConfig()
        self.markers = MarkerConfig()
        self.source = SourceConfig()
        self.scheduler = SchedulerConfig()
        self.api = ApiConfig()
        self.retry = RetryConfig()
        self.logging = LoggingConfig(
            level="INFO",
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            dir="logs",
        )

    def _apply_env_overrides(self):
        """Load configuration from environment variables (.env file)."""
        super()._apply_env_overrides()

        if os.getenv('MATCHFEED_BASE_URL'):
            self.source.base_url = os.getenv('MATCHFEED_BASE_URL').rstrip('/')
        if os.getenv('MATCHFEED_SPORT'):
            self.source.sport = os.getenv('MATCHFEED_SPORT')
        if os.getenv('MATCHFEED_SOURCES_FILE'):
            self.source.sources_file = os.getenv('MATCHFEED_SOURCES_FILE')
        self.source.resolve_unknown_results = env_flag(
            'MATCHFEED_RESOLVE_UNKNOWN_RESULTS', self.source.resolve_unknown_results
        )
        if os.getenv('MATCHFEED_MAX_RESULT_LOOKUPS'):
            self.source.max_result_lookups = int(os.getenv('MATCHFEED_MAX_RESULT_LOOKUPS'))

        self.browser.headless = env_flag('MATCHFEED_HEADLESS', self.browser.headless)
        self.browser.block_images = env_flag('MATCHFEED_BLOCK_IMAGES', self.browser.block_images)

        if os.getenv('MATCHFEED_TIMEOUT_PAGE_LOAD'):
            self.timeouts.page_load = int(os.getenv('MATCHFEED_TIMEOUT_PAGE_LOAD'))
        if os.getenv('MATCHFEED_TIMEOUT_ELEMENT_WAIT'):
            self.timeouts.element_wait = int(os.getenv('MATCHFEED_TIMEOUT_ELEMENT_WAIT'))
        if os.getenv('MATCHFEED_SCROLL_QUIET_WINDOW'):
            self.scroll.quiet_window = float(os.getenv('MATCHFEED_SCROLL_QUIET_WINDOW'))

        if os.getenv('MATCHFEED_INTERVAL_SECONDS'):
            self.scheduler.interval_seconds = float(os.getenv('MATCHFEED_INTERVAL_SECONDS'))
        if os.getenv('MATCHFEED_FULL_REFRESH_EVERY'):
            self.scheduler.full_refresh_every = int(os.getenv('MATCHFEED_FULL_REFRESH_EVERY'))
        if os.getenv('MATCHFEED_DRIFT_ALARM_RATIO'):
            self.scheduler.drift_alarm_ratio = float(os.getenv('MATCHFEED_DRIFT_ALARM_RATIO'))

        if os.getenv('MATCHFEED_API_HOST'):
            self.api.host = os.getenv('MATCHFEED_API_HOST')
        if os.getenv('PORT'):
            self.api.port = int(os.getenv('PORT'))

        if os.getenv('MATCHFEED_RETRY_MAX_ATTEMPTS'):
            self.retry.max_attempts = int(os.getenv('MATCHFEED_RETRY_MAX_ATTEMPTS'))

    def validate(self):
        """Validate matchfeed-specific settings on top of the base checks."""
        errors = super().validate()

        if self.scheduler.interval_seconds <= 0:
            errors.append("scheduler.interval_seconds must be positive")
        if self.scheduler.full_refresh_every < 1:
            errors.append("scheduler.full_refresh_every must be at least 1")
        if not 0.0 < self.scheduler.drift_alarm_ratio <= 1.0:
            errors.append("scheduler.drift_alarm_ratio must be in (0, 1]")
        if not self.source.base_url.startswith(("http://", "https://")):
            errors.append(f"Invalid base_url: {self.source.base_url}")
        if self.scroll.quiet_window <= 0:
            errors.append("scroll.quiet_window must be positive")
        if not 0 <= self.markers.offset_hours <= 23:
            errors.append("markers.offset_hours must be between 0 and 23")

        return errors
