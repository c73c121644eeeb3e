"""Raw page fragments and per-source outcomes.

Raw types carry exactly what the in-page scripts saw, with no business
interpretation. The normalizer turns them into MatchRecords.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ...models.match import CompetitionBlock
from ...sources import SourceDescriptor


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class RawOddsSlot:
    """One of the three odds cells of a row."""
    text: str = ""
    classes: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawOddsSlot':
        classes = data.get('classes') or []
        if isinstance(classes, str):
            classes = classes.split()
        return cls(
            text=_text(data.get('text')) or "",
            classes=tuple(str(c) for c in classes if c),
        )

    @property
    def is_empty(self) -> bool:
        return not self.text


@dataclass(frozen=True)
class RawRow:
    """One table row as rendered by the source."""
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    match_link: Optional[str] = None
    date_text: Optional[str] = None
    status_class: str = ""
    status_text: Optional[str] = None
    score_text: Optional[str] = None
    odds: Tuple[RawOddsSlot, ...] = ()
    region: Optional[str] = None
    competition: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawRow':
        """Build a row from the script's JSON output.

        Raises:
            ValueError: If ``data`` is not a mapping or odds are not a list
        """
        if not isinstance(data, dict):
            raise ValueError(f"Row must be an object, got {type(data).__name__}")
        odds = data.get('odds') or []
        if not isinstance(odds, list):
            raise ValueError("Row odds must be a list")
        return cls(
            home_team=_text(data.get('homeTeam')),
            away_team=_text(data.get('awayTeam')),
            match_link=_text(data.get('matchLink')),
            date_text=_text(data.get('dateText')),
            status_class=_text(data.get('statusClass')) or "",
            status_text=_text(data.get('statusText')),
            score_text=_text(data.get('scoreText')),
            odds=tuple(RawOddsSlot.from_dict(slot) for slot in odds if isinstance(slot, dict)),
            region=_text(data.get('region')),
            competition=_text(data.get('competition')),
        )

    @property
    def has_odds(self) -> bool:
        """True if at least one of the odds slots has a label."""
        return any(not slot.is_empty for slot in self.odds[:3])


@dataclass(frozen=True)
class RawFragment:
    """Everything one extraction returned."""
    url: str
    rows: Tuple[RawRow, ...] = ()
    score_text: Optional[str] = None

    @classmethod
    def from_script_output(cls, url: str, payload: Any) -> 'RawFragment':
        """Validate and wrap the object an extraction script returned.

        Raises:
            ValueError: If the payload shape is not recognised
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Extraction script returned {type(payload).__name__}, expected object")
        rows = payload.get('rows') or []
        if not isinstance(rows, list):
            raise ValueError("Extraction script 'rows' must be a list")
        return cls(
            url=url,
            rows=tuple(RawRow.from_dict(row) for row in rows),
            score_text=_text(payload.get('scoreText')),
        )


@dataclass
class SourceOutcome:
    """Result of crawling one source: blocks, or the error that emptied it."""
    source: SourceDescriptor
    blocks: List[CompetitionBlock] = field(default_factory=list)
    error: Optional[str] = None
    rows_seen: int = 0
    rows_dropped: int = 0
    result_lookups: int = 0

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def is_empty(self) -> bool:
        return all(block.is_empty for block in self.blocks)
