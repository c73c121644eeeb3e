"""Betexplorer-style fixtures tables: session, extraction, normalization, crawling."""

from .browser import BrowserSession, ChromeDriverFactory, Page, SessionManager
from .crawler import SourceCrawler
from .metrics import CycleMetrics
from .page_extractor import (
    FixturesExtractor,
    LiveBoardExtractor,
    PageExtractor,
    ResultExtractor,
    TodayExtractor,
)
from .snapshot_builder import SnapshotBuilder, merge_blocks

__all__ = [
    'BrowserSession',
    'ChromeDriverFactory',
    'Page',
    'SessionManager',
    'SourceCrawler',
    'CycleMetrics',
    'FixturesExtractor',
    'LiveBoardExtractor',
    'PageExtractor',
    'ResultExtractor',
    'TodayExtractor',
    'SnapshotBuilder',
    'merge_blocks',
]
