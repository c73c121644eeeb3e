"""Core functionality for matchfeed.

This package contains:
- interfaces.py: Protocol definitions for pluggable components
- exceptions.py: Custom exception hierarchy

Usage:
    from matchfeed.core import ExtractionFailed, ExtractorProtocol
"""

from .interfaces import (
    ExtractorProtocol,
    SnapshotSinkProtocol,
    SnapshotSourceProtocol,
)
from .exceptions import (
    MatchFeedError,
    ConfigurationError,
    BrowserError,
    SessionNotReady,
    SessionAlreadyActive,
    ScraperError,
    ExtractionFailed,
    NormalizationError,
    SnapshotBuildError,
    CacheNotReady,
)

__all__ = [
    # Protocols/Interfaces
    'ExtractorProtocol',
    'SnapshotSinkProtocol',
    'SnapshotSourceProtocol',
    # Exceptions
    'MatchFeedError',
    'ConfigurationError',
    'BrowserError',
    'SessionNotReady',
    'SessionAlreadyActive',
    'ScraperError',
    'ExtractionFailed',
    'NormalizationError',
    'SnapshotBuildError',
    'CacheNotReady',
]
