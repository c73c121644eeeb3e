"""Match-related Pydantic models.

These are the canonical, published shapes. Every model is frozen: a snapshot
is never mutated after it is built.
"""

from datetime import datetime
from enum import Enum
from typing import Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, model_validator

from ..utils.text import slugify


class MatchStatus(str, Enum):
    """Lifecycle state of a match as shown by the source."""
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    FINISHED = "FINISHED"


class MatchResult(str, Enum):
    """Winner of a finished match. UNKNOWN when no winner marker was found."""
    HOME = "HOME"
    DRAW = "DRAW"
    AWAY = "AWAY"
    UNKNOWN = "UNKNOWN"


class SnapshotKind(str, Enum):
    """The two independently refreshed snapshots."""
    FULL = "full"
    TODAY = "today"


# Fields each status must populate, and fields it must leave empty.
_REQUIRED_FIELDS = {
    MatchStatus.SCHEDULED: {"date_time"},
    MatchStatus.LIVE: {"minute", "score"},
    MatchStatus.FINISHED: {"score", "result"},
}
_STATUS_FIELDS = {"date_time", "minute", "score", "result"}


class MatchRecord(BaseModel):
    """One fixture or result."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra='forbid',
    )

    home_team: str = Field(..., alias="homeTeam", min_length=1, description="Home team name")
    away_team: str = Field(..., alias="awayTeam", min_length=1, description="Away team name")
    status: MatchStatus = Field(..., description="Match status")
    date_time: Optional[str] = Field(None, alias="dateTime", description="Canonical kick-off, SCHEDULED only")
    minute: Optional[str] = Field(None, description="Elapsed minute text, LIVE only")
    score: Optional[Tuple[NonNegativeInt, NonNegativeInt]] = Field(None, description="Home/away goals")
    result: Optional[MatchResult] = Field(None, description="Winner, FINISHED only")
    odds: Tuple[str, ...] = Field(default=(), max_length=3, description="Decimal odds, home/draw/away")
    match_link: Optional[str] = Field(None, alias="matchLink", description="Source-relative match path")

    @model_validator(mode='after')
    def _check_status_fields(self) -> 'MatchRecord':
        required = _REQUIRED_FIELDS[self.status]
        for name in _STATUS_FIELDS:
            populated = getattr(self, name) is not None
            if name in required and not populated:
                raise ValueError(f"{self.status.value} match requires '{name}'")
            if name not in required and populated:
                raise ValueError(f"{self.status.value} match must not carry '{name}'")
        return self

    @property
    def date_part(self) -> Optional[str]:
        """MM-DD-YYYY portion of ``date_time``, if it holds a real date."""
        if not self.date_time:
            return None
        head = self.date_time.split(" ", 1)[0]
        return head if head.count("-") == 2 else None

    def to_dict(self) -> dict:
        """Serialize with camelCase keys, omitting fields illegal for the status."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


class CompetitionBlock(BaseModel):
    """Matches of one region + competition pair."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(..., description="Region / country name")
    competition: str = Field(..., description="Competition name")
    matches: Tuple[MatchRecord, ...] = Field(default=(), description="Matches in page order")

    @property
    def is_empty(self) -> bool:
        return not self.matches

    def matches_names(self, region: str, competition: str) -> bool:
        """Case and slug insensitive comparison used by the read-side."""
        return (
            slugify(self.region) == slugify(region)
            and slugify(self.competition) == slugify(competition)
        )

    def to_dict(self) -> dict:
        return {
            "region": self.region,
            "competition": self.competition,
            "matches": [match.to_dict() for match in self.matches],
        }


class Snapshot(BaseModel):
    """One complete, consistent result of one refresh cycle."""

    model_config = ConfigDict(frozen=True)

    kind: SnapshotKind = Field(..., description="Which crawl produced this snapshot")
    built_at: datetime = Field(..., description="When the build finished")
    blocks: Tuple[CompetitionBlock, ...] = Field(default=(), description="Non-empty blocks in crawl order")

    @model_validator(mode='after')
    def _check_no_empty_blocks(self) -> 'Snapshot':
        if any(block.is_empty for block in self.blocks):
            raise ValueError("Snapshot must not contain empty competition blocks")
        return self

    @property
    def match_count(self) -> int:
        return sum(len(block.matches) for block in self.blocks)

    def iter_matches(self) -> Iterator[MatchRecord]:
        for block in self.blocks:
            yield from block.matches

    def find_match(self, match_link: str) -> Optional[MatchRecord]:
        """Return the record with this link, or None if it is not in this snapshot."""
        for match in self.iter_matches():
            if match.match_link == match_link:
                return match
        return None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "builtAt": self.built_at.isoformat(),
            "competitions": [block.to_dict() for block in self.blocks],
        }
