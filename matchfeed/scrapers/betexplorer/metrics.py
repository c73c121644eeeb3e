"""Per-build metrics."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .models import SourceOutcome

logger = logging.getLogger(__name__)


@dataclass
class CycleMetrics:
    """Tracks what one snapshot build saw, source by source."""

    kind: str
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    sources_total: int = 0
    sources_failed: int = 0
    sources_empty: int = 0
    rows_seen: int = 0
    rows_dropped: int = 0
    matches_published: int = 0
    result_lookups: int = 0
    degraded_sources: List[str] = field(default_factory=list)

    def record(self, outcome: SourceOutcome):
        """Fold one source's outcome into the totals."""
        self.sources_total += 1
        self.rows_seen += outcome.rows_seen
        self.rows_dropped += outcome.rows_dropped
        self.result_lookups += outcome.result_lookups
        if outcome.failed:
            self.sources_failed += 1
            self.degraded_sources.append(outcome.source.label)
        elif outcome.is_empty:
            self.sources_empty += 1
            self.degraded_sources.append(outcome.source.label)

    def finish(self, matches_published: int):
        self.end_time = datetime.now()
        self.matches_published = matches_published

    def duration(self) -> float:
        """Get total duration in seconds."""
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    @property
    def all_failed(self) -> bool:
        return self.sources_total > 0 and self.sources_failed == self.sources_total

    def degraded_ratio(self) -> float:
        """Share of sources that failed or produced nothing."""
        if self.sources_total == 0:
            return 0.0
        return len(self.degraded_sources) / self.sources_total

    def to_dict(self) -> dict:
        """Convert metrics to dictionary."""
        return {
            'kind': self.kind,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.duration(),
            'sources_total': self.sources_total,
            'sources_failed': self.sources_failed,
            'sources_empty': self.sources_empty,
            'rows_seen': self.rows_seen,
            'rows_dropped': self.rows_dropped,
            'matches_published': self.matches_published,
            'result_lookups': self.result_lookups,
            'degraded_ratio': round(self.degraded_ratio(), 3),
        }

    def to_json(self, indent: int = 2) -> str:
        """Export metrics as JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def log_summary(self):
        """Log a one-build summary."""
        logger.info("=" * 60)
        logger.info(f"BUILD SUMMARY ({self.kind})")
        logger.info("=" * 60)
        logger.info(f"Duration: {self.duration():.2f}s")
        logger.info(f"Sources: {self.sources_total} (failed {self.sources_failed}, empty {self.sources_empty})")
        logger.info(f"Rows seen: {self.rows_seen}, dropped: {self.rows_dropped}")
        logger.info(f"Result lookups: {self.result_lookups}")
        logger.info(f"Matches published: {self.matches_published}")
        logger.info("=" * 60)
