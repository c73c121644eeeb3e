"""matchfeed - crawl-and-cache service for sports fixtures, live state, results and odds."""

__version__ = "1.0.0"
