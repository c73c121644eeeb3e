"""Source crawler: one source in, competition blocks out.

Every failure below this boundary is contained: a source that cannot be
extracted or normalized contributes an empty block and its error is recorded
on the SourceOutcome. SessionNotReady is the exception; it means the caller
broke the acquire-before-extract ordering and is never swallowed.
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from config import MatchFeedConfig

from ...core.exceptions import (
    ExtractionFailed,
    NormalizationError,
    ScraperError,
    SessionNotReady,
)
from ...core.interfaces import ExtractorProtocol
from ...models.match import CompetitionBlock, MatchRecord, MatchResult, MatchStatus
from ...sources import SourceDescriptor, SourceKind
from ...utils.logging_utils import LoggerAdapter
from .browser import BrowserSession
from .models import RawFragment, SourceOutcome
from .normalizer import (
    NormalizationReport,
    NormalizerSettings,
    normalize_rows,
    result_from_score,
)
from .page_extractor import (
    FixturesExtractor,
    LiveBoardExtractor,
    ResultExtractor,
    TodayExtractor,
)

logger = logging.getLogger(__name__)


def dedupe_by_link(records: Iterable[MatchRecord]) -> List[MatchRecord]:
    """Keep the first record of each match link. Link-less records are kept."""
    seen = set()
    kept = []
    for record in records:
        if record.match_link:
            if record.match_link in seen:
                continue
            seen.add(record.match_link)
        kept.append(record)
    return kept


class SourceCrawler:
    """Crawls single sources using the extractor matching their kind."""

    def __init__(
        self,
        config: MatchFeedConfig,
        extractors: Optional[Dict[SourceKind, ExtractorProtocol]] = None,
        result_extractor: Optional[ExtractorProtocol] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize crawler.

        Args:
            config: Crawler configuration
            extractors: Extractor per source kind; defaults to the betexplorer ones
            result_extractor: Extractor for single match pages
            today: Provides the reference date handed to the normalizer
        """
        self.config = config
        self.settings = NormalizerSettings.from_config(config.markers)
        self.extractors = extractors or {
            SourceKind.FIXTURES: FixturesExtractor(config),
            SourceKind.TODAY: TodayExtractor(config),
            SourceKind.LIVE: LiveBoardExtractor(config),
        }
        self.result_extractor = result_extractor or ResultExtractor(config)
        self._today = today

    def crawl(self, session: Optional[BrowserSession], source: SourceDescriptor) -> CompetitionBlock:
        """
        Crawl one source into a single block.

        Board sources (today, live) are flattened into one block named after
        the source; use ``crawl_source`` to keep their per-competition grouping.

        Returns:
            The source's block, empty if the source failed

        Raises:
            SessionNotReady: If no live session was supplied
        """
        outcome = self.crawl_source(session, source)
        matches = [match for block in outcome.blocks for match in block.matches]
        return CompetitionBlock(
            region=source.region,
            competition=source.competition,
            matches=tuple(dedupe_by_link(matches)),
        )

    def crawl_source(self, session: Optional[BrowserSession], source: SourceDescriptor) -> SourceOutcome:
        """
        Crawl one source, recording what happened.

        Args:
            session: Live browser session
            source: Source to crawl

        Returns:
            SourceOutcome with the source's blocks, or its error and no blocks

        Raises:
            SessionNotReady: If no live session was supplied
        """
        url = source.resolve_url(self.config.source)
        extractor = self.extractors[source.kind]
        outcome = SourceOutcome(source=source)
        log = LoggerAdapter(logger, {"source": source.label})

        try:
            fragment = extractor.extract(session, url)
            report = self._normalize(fragment)
        except SessionNotReady:
            raise
        except ScraperError as e:
            log.warning(f"Source failed: {e}")
            outcome.error = str(e)
            return outcome
        except Exception as e:
            log.exception(f"Unexpected error: {e}")
            outcome.error = f"{e.__class__.__name__}: {e}"
            return outcome

        outcome.rows_seen = len(fragment.rows)
        outcome.rows_dropped = report.dropped_total
        if report.dropped:
            log.debug(f"Dropped rows {dict(report.dropped)}")

        if source.kind is SourceKind.FIXTURES:
            grouped = [((source.region, source.competition), report.records)]
        else:
            grouped, ungrouped = self._group_by_competition(report)
            outcome.rows_dropped += ungrouped

        for (region, competition), records in grouped:
            records, lookups = self._resolve_unknown_results(session, records, budget_used=outcome.result_lookups)
            outcome.result_lookups += lookups
            outcome.blocks.append(CompetitionBlock(
                region=region,
                competition=competition,
                matches=tuple(dedupe_by_link(records)),
            ))

        log.info(
            f"Crawled {sum(len(b.matches) for b in outcome.blocks)} match(es) "
            f"in {len(outcome.blocks)} block(s)"
        )
        return outcome

    def _normalize(self, fragment: RawFragment) -> NormalizationReport:
        try:
            return normalize_rows(fragment.rows, self._today(), self.settings)
        except (ValueError, TypeError) as e:
            raise NormalizationError(f"Could not normalize {fragment.url}: {e}") from e

    @staticmethod
    def _group_by_competition(
        report: NormalizationReport
    ) -> Tuple[List[Tuple[Tuple[str, str], List[MatchRecord]]], int]:
        """Group board rows under their tournament header, in first-seen order.

        Returns:
            (groups, number of rows that had no header above them)
        """
        groups: "OrderedDict[Tuple[str, str], List[MatchRecord]]" = OrderedDict()
        ungrouped = 0
        for entry in report.entries:
            if not (entry.row.region and entry.row.competition):
                ungrouped += 1
                continue
            groups.setdefault((entry.row.region, entry.row.competition), []).append(entry.record)
        return list(groups.items()), ungrouped

    def _resolve_unknown_results(
        self,
        session: Optional[BrowserSession],
        records: List[MatchRecord],
        budget_used: int = 0,
    ) -> Tuple[List[MatchRecord], int]:
        """Look up finished matches whose winner the list page did not mark.

        At most ``max_result_lookups`` lookups per source. A failed lookup
        leaves the record UNKNOWN.

        Returns:
            (records, lookups performed)
        """
        source_config = self.config.source
        if not source_config.resolve_unknown_results:
            return records, 0

        resolved = []
        lookups = 0
        for record in records:
            if (
                record.status is MatchStatus.FINISHED
                and record.result is MatchResult.UNKNOWN
                and record.match_link
                and budget_used + lookups < source_config.max_result_lookups
            ):
                lookups += 1
                record = self._lookup_result(session, record)
            resolved.append(record)
        return resolved, lookups

    def _lookup_result(self, session: Optional[BrowserSession], record: MatchRecord) -> MatchRecord:
        link = record.match_link
        url = link if link.startswith("http") else f"{self.config.source.base_url.rstrip('/')}{link}"
        try:
            fragment = self.result_extractor.extract(session, url)
        except ExtractionFailed as e:
            logger.debug(f"Result lookup failed for {link}: {e}")
            return record

        reading = result_from_score(fragment.score_text)
        if reading.result is None:
            logger.debug(f"Result for {link} unresolved: {reading.note}")
            return record
        return record.model_copy(update={"result": reading.result})
