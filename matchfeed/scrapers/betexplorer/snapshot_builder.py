"""Snapshot builder: runs the crawler over a source list and aggregates."""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from config import MatchFeedConfig

from ...core.exceptions import SnapshotBuildError
from ...models.match import CompetitionBlock, Snapshot, SnapshotKind
from ...sources import SourceDescriptor
from ...utils.alerting import AlertManager, get_alert_manager
from ...utils.text import slugify
from .browser import BrowserSession
from .crawler import SourceCrawler
from .metrics import CycleMetrics

logger = logging.getLogger(__name__)


def merge_blocks(blocks: Iterable[CompetitionBlock]) -> List[CompetitionBlock]:
    """
    Merge blocks naming the same region and competition.

    Blocks keep first-seen order. A later record with a link already present
    replaces the earlier one in place (the live board overrides the aggregate
    view); other later records are appended.
    """
    merged: "OrderedDict[tuple, tuple]" = OrderedDict()
    for block in blocks:
        key = (slugify(block.region), slugify(block.competition))
        if key not in merged:
            merged[key] = (block, list(block.matches))
            continue

        first, records = merged[key]
        positions = {record.match_link: i for i, record in enumerate(records) if record.match_link}
        for record in block.matches:
            index = positions.get(record.match_link) if record.match_link else None
            if index is None:
                if record.match_link:
                    positions[record.match_link] = len(records)
                records.append(record)
            else:
                records[index] = record
        merged[key] = (first, records)

    return [
        CompetitionBlock(region=first.region, competition=first.competition, matches=tuple(records))
        for first, records in merged.values()
    ]


class SnapshotBuilder:
    """Builds one Snapshot from one session and a list of sources."""

    def __init__(
        self,
        config: MatchFeedConfig,
        crawler: Optional[SourceCrawler] = None,
        alert_manager: Optional[AlertManager] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.crawler = crawler or SourceCrawler(config)
        self._alert_manager = alert_manager
        self._clock = clock
        self.last_metrics: Optional[CycleMetrics] = None

    @property
    def alert_manager(self) -> AlertManager:
        return self._alert_manager or get_alert_manager()

    def build(
        self,
        session: Optional[BrowserSession],
        sources: Sequence[SourceDescriptor],
        kind: SnapshotKind
    ) -> Snapshot:
        """
        Crawl every source in order and aggregate the non-empty blocks.

        Sources run one after another on the shared session; a failing
        source only empties its own block.

        Args:
            session: Live browser session
            sources: Sources in output order
            kind: Which snapshot is being built

        Returns:
            The built Snapshot, stamped with the completion time

        Raises:
            SessionNotReady: If no live session was supplied
            SnapshotBuildError: If every source failed
        """
        metrics = CycleMetrics(kind=kind.value)
        self.last_metrics = metrics
        blocks: List[CompetitionBlock] = []

        logger.info(f"Building {kind.value} snapshot from {len(sources)} source(s)")
        for source in sources:
            outcome = self.crawler.crawl_source(session, source)
            metrics.record(outcome)
            blocks.extend(outcome.blocks)

        if metrics.all_failed:
            metrics.finish(0)
            metrics.log_summary()
            raise SnapshotBuildError(
                f"All {metrics.sources_total} source(s) failed for the {kind.value} snapshot",
                details={'kind': kind.value, 'sources': metrics.sources_total},
            )

        kept = tuple(block for block in merge_blocks(blocks) if not block.is_empty)
        snapshot = Snapshot(kind=kind, built_at=self._clock(), blocks=kept)

        metrics.finish(snapshot.match_count)
        metrics.log_summary()
        self._check_drift(metrics)
        return snapshot

    def _check_drift(self, metrics: CycleMetrics):
        """Alert when too many sources failed or came back empty."""
        scheduler = self.config.scheduler
        if metrics.sources_total < scheduler.drift_min_sources:
            return
        if metrics.degraded_ratio() < scheduler.drift_alarm_ratio:
            return

        logger.warning(
            f"{len(metrics.degraded_sources)}/{metrics.sources_total} sources degraded "
            f"in {metrics.kind} build"
        )
        self.alert_manager.alert_source_drift(
            kind=metrics.kind,
            degraded=metrics.degraded_sources,
            total=metrics.sources_total,
        )
