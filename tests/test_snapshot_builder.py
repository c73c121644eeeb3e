"""Tests for the snapshot builder."""

from datetime import datetime

import pytest

from matchfeed.core.exceptions import SessionNotReady, SnapshotBuildError
from matchfeed.models.match import CompetitionBlock, MatchRecord, MatchStatus, SnapshotKind
from matchfeed.scrapers.betexplorer.crawler import SourceCrawler
from matchfeed.scrapers.betexplorer.snapshot_builder import SnapshotBuilder, merge_blocks
from matchfeed.sources import SourceDescriptor, SourceKind, today_sources

from fakes import LIVE_URL, TODAY, TODAY_URL, FakeExtractor, source_url

BUILT_AT = datetime(2026, 10, 19, 12, 0)
LIVE_CLASS = "table-main__eventStage table-main__eventStage--live"


def make_builder(config, alert_manager, pages=None, failures=None):
    extractor = FakeExtractor(pages, failures)
    crawler = SourceCrawler(
        config,
        extractors={kind: extractor for kind in SourceKind},
        result_extractor=FakeExtractor(),
        today=lambda: TODAY,
    )
    return SnapshotBuilder(config, crawler=crawler, alert_manager=alert_manager, clock=lambda: BUILT_AT)


def pages_for(sources, make_row):
    return {
        source_url(source): {"rows": [make_row(link=f"/{source.competition}/1/", date_text="Today 18:00")]}
        for source in sources
    }


class TestSnapshotBuilder:
    """Test aggregation and partial-failure isolation."""

    def test_all_sources_in_order(self, test_config, alert_manager, fake_session, three_sources, make_row):
        """Test one block per source in source order"""
        builder = make_builder(test_config, alert_manager, pages_for(three_sources, make_row))

        snapshot = builder.build(fake_session, three_sources, SnapshotKind.FULL)

        assert snapshot.kind is SnapshotKind.FULL
        assert snapshot.built_at == BUILT_AT
        assert [b.competition for b in snapshot.blocks] == ["Premier League", "Championship", "LaLiga"]

    def test_failing_source_isolated(self, test_config, alert_manager, fake_session, three_sources, make_row):
        """Test a throwing source drops out and the rest are unaffected"""
        championship = three_sources[1]
        builder = make_builder(
            test_config,
            alert_manager,
            pages_for(three_sources, make_row),
            failures={source_url(championship): RuntimeError("markup changed")},
        )

        snapshot = builder.build(fake_session, three_sources, SnapshotKind.FULL)

        assert [(b.region, b.competition) for b in snapshot.blocks] == [
            ("England", "Premier League"),
            ("Spain", "LaLiga"),
        ]
        assert all(len(b.matches) >= 1 for b in snapshot.blocks)
        assert builder.last_metrics.sources_failed == 1

    def test_empty_source_dropped(self, test_config, alert_manager, fake_session, three_sources, make_row):
        """Test a source with no matches leaves no empty block"""
        pages = pages_for(three_sources[:2], make_row)
        builder = make_builder(test_config, alert_manager, pages)

        snapshot = builder.build(fake_session, three_sources, SnapshotKind.FULL)

        assert len(snapshot.blocks) == 2
        assert builder.last_metrics.sources_empty == 1

    def test_all_sources_failed(self, test_config, alert_manager, fake_session, three_sources):
        """Test nothing is built when every source fails"""
        failures = {source_url(s): RuntimeError("down") for s in three_sources}
        builder = make_builder(test_config, alert_manager, failures=failures)

        with pytest.raises(SnapshotBuildError):
            builder.build(fake_session, three_sources, SnapshotKind.FULL)

    def test_all_empty_is_a_valid_snapshot(self, test_config, alert_manager, fake_session, three_sources):
        """Test sources that answered with nothing still publish"""
        builder = make_builder(test_config, alert_manager)

        snapshot = builder.build(fake_session, three_sources, SnapshotKind.FULL)

        assert snapshot.blocks == ()

    def test_requires_session(self, test_config, alert_manager, three_sources):
        """Test building without a session is an ordering error"""
        builder = make_builder(test_config, alert_manager)

        with pytest.raises(SessionNotReady):
            builder.build(None, three_sources, SnapshotKind.FULL)

    def test_today_merges_live_rows(self, test_config, alert_manager, fake_session, make_row):
        """Test live board rows replace the same match from the today view"""
        pages = {
            TODAY_URL: {"rows": [
                make_row(link="/a/", status_text="18:00", region="England", competition="Premier League"),
                make_row(link="/b/", status_text="20:00", region="England", competition="Premier League"),
            ]},
            LIVE_URL: {"rows": [
                make_row(link="/a/", status_class=LIVE_CLASS, status_text="12'", score="0:0",
                         region="England", competition="Premier League"),
                make_row(link="/z/", status_class=LIVE_CLASS, status_text="80'", score="1:1",
                         region="Italy", competition="Serie A"),
            ]},
        }
        builder = make_builder(test_config, alert_manager, pages)

        snapshot = builder.build(fake_session, today_sources(), SnapshotKind.TODAY)

        premier, serie_a = snapshot.blocks
        assert [m.match_link for m in premier.matches] == ["/a/", "/b/"]
        assert premier.matches[0].status is MatchStatus.LIVE
        assert serie_a.competition == "Serie A"


class TestDriftAlarm:
    """Test the markup drift alert."""

    def many_sources(self, count):
        return [SourceDescriptor(region=f"Region {i}", competition=f"League {i}") for i in range(count)]

    def test_alarm_when_most_sources_degrade(self, test_config, alert_manager, fake_session, make_row):
        """Test the alert fires at the configured ratio"""
        sources = self.many_sources(4)
        builder = make_builder(test_config, alert_manager, pages_for(sources[:1], make_row),
                               failures={source_url(sources[1]): RuntimeError("x")})

        builder.build(fake_session, sources, SnapshotKind.FULL)

        alert_manager.alert_source_drift.assert_called_once()
        kwargs = alert_manager.alert_source_drift.call_args.kwargs
        assert kwargs["total"] == 4
        assert len(kwargs["degraded"]) == 3

    def test_no_alarm_when_healthy(self, test_config, alert_manager, fake_session, make_row):
        """Test healthy builds stay quiet"""
        sources = self.many_sources(4)
        builder = make_builder(test_config, alert_manager, pages_for(sources, make_row))

        builder.build(fake_session, sources, SnapshotKind.FULL)

        alert_manager.alert_source_drift.assert_not_called()

    def test_no_alarm_for_small_source_lists(self, test_config, alert_manager, fake_session):
        """Test the alarm needs a minimum number of sources"""
        builder = make_builder(test_config, alert_manager)

        builder.build(fake_session, today_sources(), SnapshotKind.TODAY)

        alert_manager.alert_source_drift.assert_not_called()


def test_merge_blocks_slug_insensitive():
    """Test blocks naming the same competition differently are merged"""
    def record(link):
        return MatchRecord(home_team="A", away_team="B", status=MatchStatus.SCHEDULED,
                           date_time="10-19-2026 13:00 EST", match_link=link)

    merged = merge_blocks([
        CompetitionBlock(region="England", competition="Premier League", matches=(record("/1/"),)),
        CompetitionBlock(region="england", competition="premier league", matches=(record("/2/"),)),
    ])

    assert len(merged) == 1
    assert merged[0].region == "England"
    assert [m.match_link for m in merged[0].matches] == ["/1/", "/2/"]
