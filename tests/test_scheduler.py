"""Tests for the refresh scheduler."""

import threading
import time
from unittest.mock import Mock

import pytest

from matchfeed.core.exceptions import SessionNotReady
from matchfeed.models.match import SnapshotKind
from matchfeed.scheduler import RefreshScheduler
from matchfeed.scrapers.betexplorer.browser import SessionManager
from matchfeed.scrapers.betexplorer.crawler import SourceCrawler
from matchfeed.scrapers.betexplorer.snapshot_builder import SnapshotBuilder
from matchfeed.sources import SourceKind
from matchfeed.storage import CacheStore

from fakes import TODAY, FakeExtractor, source_url


class Harness:
    """Scheduler wired to mock drivers and canned pages."""

    def __init__(self, config, sources, alert_manager, pages=None, failures=None):
        self.drivers = []
        self.extractor = FakeExtractor(pages, failures)
        self.session_manager = SessionManager(config, driver_factory=self.new_driver)
        crawler = SourceCrawler(
            config,
            extractors={kind: self.extractor for kind in SourceKind},
            result_extractor=FakeExtractor(),
            today=lambda: TODAY,
        )
        self.builder = SnapshotBuilder(config, crawler=crawler, alert_manager=alert_manager)
        self.cache = CacheStore()
        self.scheduler = RefreshScheduler(
            config,
            self.session_manager,
            self.builder,
            self.cache,
            sources,
            alert_manager=alert_manager,
        )

    def new_driver(self):
        driver = Mock(current_window_handle="base")
        self.drivers.append(driver)
        return driver


@pytest.fixture
def pages(three_sources, make_row):
    return {
        source_url(source): {"rows": [make_row(link=f"/{source.competition}/1/", date_text="Today 18:00")]}
        for source in three_sources
    }


@pytest.fixture
def harness(test_config, three_sources, alert_manager, pages):
    return Harness(test_config, three_sources, alert_manager, pages)


class TestRunCycle:
    """Test one acquire, build, publish, release cycle."""

    def test_success_publishes_and_releases(self, harness):
        """Test a successful cycle publishes and tears the session down"""
        assert harness.scheduler.run_cycle(SnapshotKind.FULL) is True

        snapshot = harness.cache.read(SnapshotKind.FULL)
        assert len(snapshot.blocks) == 3
        assert harness.session_manager.current is None
        harness.drivers[0].quit.assert_called_once()

        status = harness.scheduler.status()
        assert 'full' in status.last_success
        assert status.last_metrics['full']['sources_total'] == 3

    def test_fresh_session_every_cycle(self, harness):
        """Test no session is carried between cycles"""
        harness.scheduler.run_cycle(SnapshotKind.FULL)
        harness.scheduler.run_cycle(SnapshotKind.FULL)

        assert len(harness.drivers) == 2
        assert all(d.quit.call_count == 1 for d in harness.drivers)

    def test_failed_build_keeps_previous_snapshot(self, harness, three_sources, alert_manager):
        """Test an all-failed cycle publishes nothing"""
        harness.scheduler.run_cycle(SnapshotKind.FULL)
        previous = harness.cache.read(SnapshotKind.FULL)

        for source in three_sources:
            harness.extractor.failures[source_url(source)] = RuntimeError("down")

        assert harness.scheduler.run_cycle(SnapshotKind.FULL) is False
        assert harness.cache.read(SnapshotKind.FULL) is previous
        assert harness.session_manager.current is None
        alert_manager.alert_cycle_failure.assert_called_once()
        assert "SnapshotBuildError" in harness.scheduler.status().last_error

    def test_unexpected_error_releases(self, harness):
        """Test an unexpected builder error still releases the session"""
        harness.builder.build = Mock(side_effect=RuntimeError("bug"))

        assert harness.scheduler.run_cycle(SnapshotKind.FULL) is False
        assert harness.session_manager.current is None
        harness.drivers[0].quit.assert_called_once()

    def test_browser_start_failure(self, test_config, three_sources, alert_manager):
        """Test a browser that cannot start skips the cycle"""
        harness = Harness(test_config, three_sources, alert_manager)
        harness.session_manager._driver_factory = Mock(side_effect=RuntimeError("no chrome"))

        assert harness.scheduler.run_cycle(SnapshotKind.FULL) is False
        assert harness.cache.peek(SnapshotKind.FULL) is None
        assert 'full' in harness.scheduler.status().last_failure

    def test_today_cycle_uses_boards(self, harness):
        """Test the today cycle crawls the two board views"""
        harness.scheduler.run_cycle(SnapshotKind.TODAY)

        assert harness.extractor.calls == [
            "https://www.betexplorer.com/next/soccer/",
            "https://www.betexplorer.com/soccer/",
        ]
        assert harness.cache.is_ready(SnapshotKind.TODAY)


class TestTick:
    """Test the two-speed cadence."""

    def test_cadence(self, harness, test_config):
        """Test today runs every tick, full on the first and every Nth"""
        test_config.scheduler.full_refresh_every = 3
        ran_full = []

        for _ in range(7):
            results = harness.scheduler.tick()
            assert SnapshotKind.TODAY in results
            ran_full.append(SnapshotKind.FULL in results)

        assert ran_full == [True, False, False, True, False, False, True]
        assert harness.scheduler.status().ticks == 7

    def test_cold_start_fills_both(self, harness):
        """Test the first tick makes both snapshots readable"""
        harness.scheduler.tick()

        assert harness.cache.is_ready(SnapshotKind.TODAY)
        assert harness.cache.is_ready(SnapshotKind.FULL)


class TestStartStop:
    """Test the background thread."""

    def test_start_and_stop(self, harness, test_config):
        """Test the thread ticks until stopped"""
        test_config.scheduler.interval_seconds = 0.01
        harness.scheduler.start()
        try:
            deadline = time.monotonic() + 5
            while harness.scheduler.status().ticks < 2 and time.monotonic() < deadline:
                time.sleep(0.01)
            assert harness.scheduler.is_running
        finally:
            harness.scheduler.stop(timeout=5)

        assert not harness.scheduler.is_running
        assert harness.scheduler.status().ticks >= 2
        assert harness.session_manager.current is None

    def test_stop_closes_session_of_stuck_cycle(self, harness):
        """Test a cycle outliving the stop timeout has its browser closed"""
        building = threading.Event()

        def slow_build(session, sources, kind):
            building.set()
            while session.is_alive:
                time.sleep(0.01)
            raise SessionNotReady("Browser session already closed")

        harness.builder.build = slow_build
        harness.scheduler.start()
        assert building.wait(5)

        harness.scheduler.stop(timeout=0.5)

        assert not harness.scheduler.is_running
        assert harness.session_manager.current is None
        assert len(harness.drivers) == 1
        harness.drivers[0].quit.assert_called_once()
        assert harness.cache.peek(SnapshotKind.FULL) is None

    def test_stop_without_start(self, harness):
        """Test stop is safe before start"""
        harness.scheduler.stop()
        assert not harness.scheduler.status().running
