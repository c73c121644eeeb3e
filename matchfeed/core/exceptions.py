"""Custom exception hierarchy for matchfeed.

Exception Hierarchy:
    MatchFeedError (base)
    ├── ConfigurationError
    ├── BrowserError
    │   ├── SessionNotReady
    │   └── SessionAlreadyActive
    ├── ScraperError
    │   ├── ExtractionFailed
    │   └── NormalizationError
    ├── SnapshotBuildError
    └── CacheNotReady

Errors below the source crawler boundary (ExtractionFailed, NormalizationError)
are contained per source. SessionNotReady is an ordering bug and is never
retried. CacheNotReady is a read-side condition, surfaced to API clients as a
retryable 503.

Usage:
    from matchfeed.core.exceptions import ExtractionFailed

    try:
        fragment = extractor.extract(session, url)
    except ExtractionFailed as e:
        logger.warning(f"Source degraded: {e}")
"""


class MatchFeedError(Exception):
    """Base exception for all matchfeed errors.

    Attributes:
        message: Error message
        details: Optional dictionary with additional error details
    """

    def __init__(self, message: str, details: dict = None):
        """Initialize matchfeed error.

        Args:
            message: Error message
            details: Optional dictionary with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """String representation of error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> dict:
        """Convert error to dictionary.

        Returns:
            Dictionary with error information
        """
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'details': self.details,
        }


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(MatchFeedError):
    """Configuration-related errors.

    Raised when:
    - Configuration validation fails
    - The source list file is missing or malformed
    """
    pass


# =============================================================================
# Browser Errors
# =============================================================================

class BrowserError(MatchFeedError):
    """Browser/driver errors (session creation, teardown)."""
    pass


class SessionNotReady(BrowserError):
    """An extraction was attempted with no live browser session.

    This is an ordering invariant: the session must be acquired before any
    extraction. Callers must not retry.
    """

    def __init__(self, message: str = "Browser not initialized", details: dict = None):
        super().__init__(message, details)


class SessionAlreadyActive(BrowserError):
    """A second session was requested while one is still alive."""
    pass


# =============================================================================
# Scraper Errors
# =============================================================================

class ScraperError(MatchFeedError):
    """Base exception for scraper-related errors."""
    pass


class ExtractionFailed(ScraperError):
    """Navigation, settle-wait, selector or script failure for one page.

    Raised when:
    - Page navigation times out
    - Expected content never appears
    - The in-page extraction script fails or returns an unexpected shape
    """

    def __init__(self, url: str, cause: Exception = None, details: dict = None):
        """Initialize extraction failure.

        Args:
            url: Page that failed
            cause: Underlying exception, if any
            details: Additional error details (optional)
        """
        reason = f"{cause.__class__.__name__}: {cause}" if cause is not None else "unknown cause"
        super().__init__(f"Extraction failed for {url}: {reason}", details)
        self.url = url
        self.cause = cause

    def to_dict(self) -> dict:
        """Convert error to dictionary."""
        data = super().to_dict()
        data['url'] = self.url
        if self.cause is not None:
            data['cause'] = str(self.cause)
        return data


class NormalizationError(ScraperError):
    """A raw fragment could not be turned into match records at all."""
    pass


# =============================================================================
# Build / Cache Errors
# =============================================================================

class SnapshotBuildError(MatchFeedError):
    """Every source of a cycle failed; nothing worth publishing."""
    pass


class CacheNotReady(MatchFeedError):
    """No snapshot of the requested kind has been published yet."""

    def __init__(self, kind: str, details: dict = None):
        super().__init__(f"No {kind} snapshot published yet", details)
        self.kind = kind


__all__ = [
    # Base
    'MatchFeedError',
    # Configuration
    'ConfigurationError',
    # Browser
    'BrowserError',
    'SessionNotReady',
    'SessionAlreadyActive',
    # Scraper
    'ScraperError',
    'ExtractionFailed',
    'NormalizationError',
    # Build / cache
    'SnapshotBuildError',
    'CacheNotReady',
]
