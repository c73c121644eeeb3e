"""Canonical data models."""

from .match import (
    CompetitionBlock,
    MatchRecord,
    MatchResult,
    MatchStatus,
    Snapshot,
    SnapshotKind,
)

__all__ = [
    'CompetitionBlock',
    'MatchRecord',
    'MatchResult',
    'MatchStatus',
    'Snapshot',
    'SnapshotKind',
]
