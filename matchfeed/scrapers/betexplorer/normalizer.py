"""Normalization of raw rows into canonical match records.

Pure and deterministic: no I/O, no clock. ``today`` is always passed in.

Two responsibilities:

* Date/time inference. The source renders a date once per block, so a row
  without an explicit value inherits the last explicit one seen in document
  order. Displayed times are one hour ahead of the canonical zone.
* Status classification. One terminal decision per row: LIVE, FINISHED,
  SCHEDULED, or dropped (awarded/cancelled, odds-less, malformed).
"""

import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import FrozenSet, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from config import MarkerConfig

from ...models.match import MatchRecord, MatchResult, MatchStatus
from ...utils.text import normalize_marker
from .models import RawOddsSlot, RawRow

DATE_NOT_AVAILABLE = "date not available"
CANONICAL_DATE_FORMAT = "%m-%d-%Y"

_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})")
_ABSOLUTE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.\s*(\d{1,2}):(\d{2})")
_TIME_OF_DAY_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_SCORE_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)")

_OUTCOME_ORDER = (MatchResult.HOME, MatchResult.DRAW, MatchResult.AWAY)


@dataclass(frozen=True)
class NormalizerSettings:
    """Source markers and display conventions, frozen for one build."""
    live_class: str = "table-main__eventStage--live"
    winner_class: str = "result-ok"
    finished_markers: FrozenSet[str] = frozenset({"FT", "AET", "PEN"})
    dropped_markers: FrozenSet[str] = frozenset({"AWA", "CAN"})
    zone_label: str = "EST"
    offset_hours: int = 1

    @classmethod
    def from_config(cls, markers: MarkerConfig) -> 'NormalizerSettings':
        return cls(
            live_class=markers.live_class,
            winner_class=markers.winner_class,
            finished_markers=frozenset(normalize_marker(m) for m in markers.finished_markers),
            dropped_markers=frozenset(normalize_marker(m) for m in markers.dropped_markers),
            zone_label=markers.zone_label,
            offset_hours=markers.offset_hours,
        )


DEFAULT_SETTINGS = NormalizerSettings()


# =============================================================================
# Date / time inference
# =============================================================================

def format_canonical(moment: datetime, zone_label: str) -> str:
    """Format as ``MM-DD-YYYY H:MM <ZONE>`` (hour not zero-padded)."""
    return f"{moment.strftime(CANONICAL_DATE_FORMAT)} {moment.hour}:{moment.minute:02d} {zone_label}"


def parse_date_time(
    text: Optional[str],
    today: date,
    settings: NormalizerSettings = DEFAULT_SETTINGS
) -> Optional[str]:
    """
    Parse a displayed date/time into the canonical string.

    Handles ``Today 14:00``, ``Tomorrow 14:00`` and ``12.5. 14:00`` (current
    year). The source offset is subtracted; crossing midnight rolls back to
    23:xx on the previous calendar day.

    Args:
        text: Displayed date/time text
        today: Reference date for relative markers and the year
        settings: Zone label and offset

    Returns:
        Canonical string, or None if ``text`` is empty or not understood
    """
    if not text:
        return None

    lowered = text.lower()
    if "today" in lowered or "tomorrow" in lowered:
        clock = _CLOCK_RE.search(text)
        if not clock:
            return None
        day = today + timedelta(days=1) if "tomorrow" in lowered else today
        hour, minute = int(clock.group(1)), int(clock.group(2))
    else:
        absolute = _ABSOLUTE_RE.search(text)
        if not absolute:
            return None
        try:
            day = date(today.year, int(absolute.group(2)), int(absolute.group(1)))
        except ValueError:
            return None
        hour, minute = int(absolute.group(3)), int(absolute.group(4))

    if hour > 23 or minute > 59:
        return None

    moment = datetime.combine(day, time(hour, minute)) - timedelta(hours=settings.offset_hours)
    return format_canonical(moment, settings.zone_label)


@dataclass(frozen=True)
class DateAccumulator:
    """State threaded through the row fold: the last explicit date seen."""
    last_known: Optional[str] = None

    def advance(
        self,
        date_text: Optional[str],
        today: date,
        settings: NormalizerSettings = DEFAULT_SETTINGS
    ) -> Tuple['DateAccumulator', str]:
        """Consume one row's date cell.

        Returns:
            (next accumulator, resolved value for this row)
        """
        parsed = parse_date_time(date_text, today, settings)
        if parsed is not None:
            return DateAccumulator(parsed), parsed
        return self, self.last_known or DATE_NOT_AVAILABLE


def infer_dates(
    rows: Iterable[RawRow],
    today: date,
    settings: NormalizerSettings = DEFAULT_SETTINGS
) -> List[str]:
    """Resolve the date of every row, inheriting implied dates in document order."""
    accumulator = DateAccumulator()
    resolved = []
    for row in rows:
        accumulator, value = accumulator.advance(row.date_text, today, settings)
        resolved.append(value)
    return resolved


# =============================================================================
# Status classification
# =============================================================================

class RowDecision(Enum):
    """Terminal classification of one row."""
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"
    DROPPED = "dropped"


def classify_status(row: RawRow, settings: NormalizerSettings = DEFAULT_SETTINGS) -> RowDecision:
    """Classify a row from its status cell class and text."""
    if settings.live_class and settings.live_class in row.status_class.split():
        return RowDecision.LIVE

    marker = normalize_marker(row.status_text)
    if marker in settings.finished_markers:
        return RowDecision.FINISHED
    if marker in settings.dropped_markers:
        return RowDecision.DROPPED
    return RowDecision.SCHEDULED


def determine_result(
    odds: Sequence[RawOddsSlot],
    winner_class: str = DEFAULT_SETTINGS.winner_class
) -> MatchResult:
    """First odds slot carrying the winner marker, in home/draw/away order."""
    for outcome, slot in zip(_OUTCOME_ORDER, odds[:3]):
        if winner_class in slot.classes:
            return outcome
    return MatchResult.UNKNOWN


def parse_score(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse ``"2:1"`` (optionally followed by annotations) into (2, 1)."""
    if not text:
        return None
    match = _SCORE_RE.match(text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


class ScoreReading(NamedTuple):
    """Interpretation of a match page score."""
    result: Optional[MatchResult]
    score: Optional[Tuple[int, int]]
    note: str


def result_from_score(text: Optional[str]) -> ScoreReading:
    """Decide the winner from a single match page score.

    A bare ``:`` means the match has not been played yet.
    """
    if text is None:
        return ScoreReading(None, None, "Score not found")
    if text.strip() == ":":
        return ScoreReading(None, None, "Match not played yet")
    score = parse_score(text)
    if score is None:
        return ScoreReading(None, None, "Score format not recognized")
    home, away = score
    if home > away:
        return ScoreReading(MatchResult.HOME, score, "Home")
    if home < away:
        return ScoreReading(MatchResult.AWAY, score, "Away")
    return ScoreReading(MatchResult.DRAW, score, "Draw")


# =============================================================================
# Row fold
# =============================================================================

class NormalizedRow(NamedTuple):
    row: RawRow
    record: MatchRecord


@dataclass
class NormalizationReport:
    """Records kept, in row order, plus why the others were dropped."""
    entries: List[NormalizedRow] = field(default_factory=list)
    dropped: Counter = field(default_factory=Counter)

    @property
    def records(self) -> List[MatchRecord]:
        return [entry.record for entry in self.entries]

    @property
    def dropped_total(self) -> int:
        return sum(self.dropped.values())


def _scheduled_date(row: RawRow, inferred: str, today: date, settings: NormalizerSettings) -> str:
    """Time-of-day boards carry only HH:MM; anchor those to today."""
    if row.status_text and _TIME_OF_DAY_RE.match(row.status_text):
        synthesized = parse_date_time(f"Today {row.status_text}", today, settings)
        if synthesized is not None:
            return synthesized
    return inferred


def normalize_row(
    row: RawRow,
    inferred_date: str,
    today: date,
    settings: NormalizerSettings = DEFAULT_SETTINGS
) -> Tuple[Optional[MatchRecord], Optional[str]]:
    """
    Turn one raw row into a record.

    Returns:
        (record, None) when kept, (None, drop reason) otherwise
    """
    if not row.has_odds:
        return None, "no_odds"
    if not (row.home_team and row.away_team):
        return None, "no_teams"

    decision = classify_status(row, settings)
    if decision is RowDecision.DROPPED:
        return None, "awarded_or_cancelled"

    common = {
        "home_team": row.home_team,
        "away_team": row.away_team,
        "odds": tuple(slot.text for slot in row.odds[:3] if slot.text),
        "match_link": row.match_link,
    }

    try:
        if decision is RowDecision.LIVE:
            score = parse_score(row.score_text)
            if score is None:
                return None, "unparseable_score"
            record = MatchRecord(
                status=MatchStatus.LIVE,
                minute=row.status_text or "",
                score=score,
                **common,
            )
        elif decision is RowDecision.FINISHED:
            score = parse_score(row.score_text)
            if score is None:
                return None, "unparseable_score"
            record = MatchRecord(
                status=MatchStatus.FINISHED,
                score=score,
                result=determine_result(row.odds, settings.winner_class),
                **common,
            )
        else:
            record = MatchRecord(
                status=MatchStatus.SCHEDULED,
                date_time=_scheduled_date(row, inferred_date, today, settings),
                **common,
            )
    except ValueError:
        return None, "invalid"

    return record, None


def normalize_rows(
    rows: Sequence[RawRow],
    today: date,
    settings: NormalizerSettings = DEFAULT_SETTINGS
) -> NormalizationReport:
    """
    Normalize a page's rows.

    Dates are inferred over every row first, so an odds-less header row still
    implies the date of the rows under it. Rows are then filtered and
    classified one by one.

    Args:
        rows: Raw rows in document order
        today: Reference date
        settings: Source markers

    Returns:
        NormalizationReport with kept records and drop counters
    """
    report = NormalizationReport()
    for row, inferred in zip(rows, infer_dates(rows, today, settings)):
        record, reason = normalize_row(row, inferred, today, settings)
        if record is None:
            report.dropped[reason] += 1
        else:
            report.entries.append(NormalizedRow(row, record))
    return report
