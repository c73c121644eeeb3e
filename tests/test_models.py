"""Tests for the published data model."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from matchfeed.models.match import (
    CompetitionBlock,
    MatchRecord,
    MatchResult,
    MatchStatus,
    Snapshot,
    SnapshotKind,
)
from matchfeed.scrapers.betexplorer.models import RawFragment, RawRow


def scheduled(link="/m/1/", **kwargs):
    return MatchRecord(
        home_team="Arsenal",
        away_team="Chelsea",
        status=MatchStatus.SCHEDULED,
        date_time="10-19-2026 13:00 EST",
        match_link=link,
        **kwargs,
    )


class TestMatchRecord:
    """Test the status/field invariant."""

    def test_scheduled_serializes_camel_case(self):
        """Test only the fields legal for SCHEDULED are emitted"""
        data = scheduled(odds=("1.85", "3.60", "4.20")).to_dict()

        assert data == {
            "homeTeam": "Arsenal",
            "awayTeam": "Chelsea",
            "status": "SCHEDULED",
            "dateTime": "10-19-2026 13:00 EST",
            "odds": ["1.85", "3.60", "4.20"],
            "matchLink": "/m/1/",
        }

    def test_live_record(self):
        """Test LIVE carries minute and score only"""
        record = MatchRecord(
            homeTeam="A", awayTeam="B", status="LIVE", minute="12'", score=(0, 1)
        )
        data = record.to_dict()

        assert data["minute"] == "12'"
        assert data["score"] == [0, 1]
        assert "dateTime" not in data and "result" not in data

    def test_finished_requires_result(self):
        """Test FINISHED without result is rejected"""
        with pytest.raises(ValidationError):
            MatchRecord(home_team="A", away_team="B", status=MatchStatus.FINISHED, score=(1, 0))

    def test_finished_with_unknown_result(self):
        """Test UNKNOWN is a valid result determination"""
        record = MatchRecord(
            home_team="A", away_team="B", status=MatchStatus.FINISHED,
            score=(1, 0), result=MatchResult.UNKNOWN,
        )
        assert record.to_dict()["result"] == "UNKNOWN"

    @pytest.mark.parametrize('extra', [
        {"score": (1, 0)},
        {"minute": "10'"},
        {"result": MatchResult.HOME},
    ])
    def test_scheduled_rejects_foreign_fields(self, extra):
        """Test SCHEDULED may not carry live/finished fields"""
        with pytest.raises(ValidationError):
            scheduled(**extra)

    def test_live_rejects_date(self):
        """Test LIVE may not carry a date"""
        with pytest.raises(ValidationError):
            MatchRecord(
                home_team="A", away_team="B", status=MatchStatus.LIVE,
                minute="1'", score=(0, 0), date_time="10-19-2026 13:00 EST",
            )

    def test_negative_score_rejected(self):
        """Test scores are non-negative"""
        with pytest.raises(ValidationError):
            MatchRecord(home_team="A", away_team="B", status=MatchStatus.LIVE, minute="1'", score=(-1, 0))

    def test_at_most_three_odds(self):
        """Test the odds sequence is capped at three"""
        with pytest.raises(ValidationError):
            scheduled(odds=("1", "2", "3", "4"))

    def test_frozen(self):
        """Test records cannot be mutated"""
        record = scheduled()
        with pytest.raises(ValidationError):
            record.home_team = "Spurs"

    @pytest.mark.parametrize('date_time,expected', [
        ("10-19-2026 13:00 EST", "10-19-2026"),
        ("date not available", None),
    ])
    def test_date_part(self, date_time, expected):
        """Test the date portion used by the date filter"""
        record = MatchRecord(home_team="A", away_team="B", status=MatchStatus.SCHEDULED, date_time=date_time)
        assert record.date_part == expected


class TestSnapshot:
    """Test Snapshot and CompetitionBlock."""

    def test_empty_blocks_rejected(self):
        """Test a snapshot never contains an empty block"""
        with pytest.raises(ValidationError):
            Snapshot(
                kind=SnapshotKind.FULL,
                built_at=datetime.now(),
                blocks=(CompetitionBlock(region="England", competition="Premier League"),),
            )

    def test_find_match_and_counts(self):
        """Test lookups across blocks"""
        snapshot = Snapshot(
            kind=SnapshotKind.FULL,
            built_at=datetime(2026, 10, 19, 12, 0),
            blocks=(
                CompetitionBlock(region="England", competition="Premier League", matches=(scheduled("/a/"),)),
                CompetitionBlock(region="Spain", competition="LaLiga", matches=(scheduled("/b/"), scheduled("/c/"))),
            ),
        )

        assert snapshot.match_count == 3
        assert snapshot.find_match("/c/").match_link == "/c/"
        assert snapshot.find_match("/zzz/") is None
        assert snapshot.to_dict()["builtAt"] == "2026-10-19T12:00:00"
        assert [c["competition"] for c in snapshot.to_dict()["competitions"]] == ["Premier League", "LaLiga"]

    def test_block_name_match_is_slug_insensitive(self):
        """Test path segments match human-readable names"""
        block = CompetitionBlock(region="England", competition="Premier League", matches=(scheduled(),))

        assert block.matches_names("england", "premier-league")
        assert block.matches_names("ENGLAND", "Premier League")
        assert not block.matches_names("england", "championship")


class TestRawFragment:
    """Test validation of extraction script output."""

    def test_rows_parsed(self):
        """Test camelCase keys map onto RawRow"""
        fragment = RawFragment.from_script_output("u", {"rows": [{
            "homeTeam": " Arsenal ",
            "awayTeam": "Chelsea",
            "odds": [{"text": "1.5", "classes": "table-main__odds result-ok"}],
        }]})

        row = fragment.rows[0]
        assert isinstance(row, RawRow)
        assert row.home_team == "Arsenal"
        assert row.odds[0].classes == ("table-main__odds", "result-ok")
        assert row.has_odds

    @pytest.mark.parametrize('payload', [None, [], "rows", {"rows": "nope"}, {"rows": [1]}])
    def test_bad_shapes_rejected(self, payload):
        """Test unexpected script output raises ValueError"""
        with pytest.raises(ValueError):
            RawFragment.from_script_output("u", payload)

    def test_score_only_payload(self):
        """Test result pages carry a score and no rows"""
        fragment = RawFragment.from_script_output("u", {"rows": [], "scoreText": "2:0"})
        assert fragment.rows == ()
        assert fragment.score_text == "2:0"
