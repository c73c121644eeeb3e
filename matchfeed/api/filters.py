"""Query-parameter filters over already-normalized snapshots."""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from ..models.match import CompetitionBlock, MatchRecord, MatchStatus
from .errors import invalid_parameter

NO_LONGER_ACTIVE = "Match is no longer active"

_TRUE = frozenset({'true', '1', 'yes'})
_FALSE = frozenset({'false', '0', 'no'})


def parse_bool(name: str, value: Optional[str]) -> Optional[bool]:
    """Parse a boolean query value; None when the parameter is absent.

    Raises:
        ApiError: 400 INVALID_PARAMETER for anything else
    """
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise invalid_parameter(name, value, "true or false")


def parse_date(value: Optional[str]) -> Optional[str]:
    """Validate a ``MM-DD-YYYY`` date and return it unchanged."""
    if value is None:
        return None
    try:
        datetime.strptime(value, "%m-%d-%Y")
    except ValueError:
        raise invalid_parameter('date', value, "a date formatted MM-DD-YYYY") from None
    return value


@dataclass(frozen=True)
class MatchFilter:
    """Conjunction of the listing filters. Absent parameters match everything."""
    date: Optional[str] = None
    finished: Optional[bool] = None
    live: Optional[bool] = None

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> 'MatchFilter':
        return cls(
            date=parse_date(args.get('date')),
            finished=parse_bool('finished', args.get('finished')),
            live=parse_bool('live', args.get('live')),
        )

    @property
    def is_empty(self) -> bool:
        return self.date is None and self.finished is None and self.live is None

    def matches(self, record: MatchRecord) -> bool:
        if self.date is not None and record.date_part != self.date:
            return False
        if self.finished is not None and (record.status is MatchStatus.FINISHED) != self.finished:
            return False
        if self.live is not None and (record.status is MatchStatus.LIVE) != self.live:
            return False
        return True

    def apply(self, block: CompetitionBlock) -> dict:
        """Serialize ``block`` keeping only the matching records."""
        return {
            'region': block.region,
            'competition': block.competition,
            'matches': [record.to_dict() for record in block.matches if self.matches(record)],
        }

    def apply_all(self, blocks: Iterable[CompetitionBlock]) -> List[dict]:
        """Serialize every block, leaving out blocks the filter emptied."""
        if self.is_empty:
            return [block.to_dict() for block in blocks]
        filtered = (self.apply(block) for block in blocks)
        return [block for block in filtered if block['matches']]


def find_by_link(blocks: Iterable[CompetitionBlock], link: str) -> Optional[MatchRecord]:
    for block in blocks:
        for record in block.matches:
            if record.match_link == link:
                return record
    return None
