"""Tests for page extractors."""

import pytest
from selenium.common.exceptions import JavascriptException, TimeoutException

from matchfeed.core.exceptions import ExtractionFailed, SessionNotReady
from matchfeed.core.interfaces import ExtractorProtocol
from matchfeed.scrapers.betexplorer.page_extractor import (
    FixturesExtractor,
    LiveBoardExtractor,
    ResultExtractor,
    TodayExtractor,
)
from matchfeed.scrapers.betexplorer.scripts import RESULT_SCRIPT, ROWS_SCRIPT

from fakes import FakePage, FakePageSession

URL = "https://www.betexplorer.com/soccer/england/premier-league/fixtures/"


class TestPageExtractor:
    """Test the shared extraction flow."""

    def test_implements_protocol(self, test_config):
        """Test extractors satisfy the extractor interface"""
        assert isinstance(FixturesExtractor(test_config), ExtractorProtocol)

    def test_extracts_rows(self, test_config, make_row):
        """Test rows come back as a RawFragment"""
        page = FakePage(payload={"rows": [make_row(), make_row(link="/m/2/")]})
        session = FakePageSession(page)

        fragment = FixturesExtractor(test_config).extract(session, URL)

        assert fragment.url == URL
        assert len(fragment.rows) == 2
        assert page.visited == [URL]
        assert page.waited_for == [test_config.selectors.content_ready]
        script, args = page.evaluated[0]
        assert script == ROWS_SCRIPT
        assert args[0]["row"] == test_config.selectors.row
        assert session.open_pages == 0

    @pytest.mark.parametrize('session', [None, "closed"])
    def test_requires_live_session(self, test_config, session):
        """Test extraction without a live session is an ordering error"""
        if session == "closed":
            session = FakePageSession(FakePage())
            session.close()

        with pytest.raises(SessionNotReady):
            FixturesExtractor(test_config).extract(session, URL)

    def test_script_error_becomes_extraction_failed(self, test_config):
        """Test a failing script surfaces as ExtractionFailed, page closed"""
        page = FakePage(payload=JavascriptException("selector broke"))
        session = FakePageSession(page)

        with pytest.raises(ExtractionFailed) as exc_info:
            FixturesExtractor(test_config).extract(session, URL)

        assert exc_info.value.url == URL
        assert isinstance(exc_info.value.cause, JavascriptException)
        assert session.open_pages == 0

    def test_bad_shape_becomes_extraction_failed(self, test_config):
        """Test unexpected script output is a failure, not an empty result"""
        session = FakePageSession(FakePage(payload=["not", "an", "object"]))

        with pytest.raises(ExtractionFailed):
            FixturesExtractor(test_config).extract(session, URL)

    def test_navigation_timeout_retried(self, test_config):
        """Test page-load timeouts are retried"""
        page = FakePage(goto_errors=[TimeoutException("slow"), TimeoutException("slow")])
        session = FakePageSession(page)

        fragment = FixturesExtractor(test_config).extract(session, URL)

        assert fragment.rows == ()
        assert page.visited == [URL, URL, URL]

    def test_navigation_gives_up(self, test_config):
        """Test persistent timeouts end in ExtractionFailed"""
        test_config.retry.max_attempts = 2
        page = FakePage(goto_errors=[TimeoutException("slow")] * 5)
        session = FakePageSession(page)

        with pytest.raises(ExtractionFailed) as exc_info:
            FixturesExtractor(test_config).extract(session, URL)

        assert isinstance(exc_info.value.cause, TimeoutException)
        assert len(page.visited) == 2

    def test_each_call_gets_its_own_page(self, test_config):
        """Test one page context per extraction"""
        session = FakePageSession(FakePage())
        extractor = FixturesExtractor(test_config)

        extractor.extract(session, URL)
        extractor.extract(session, URL)

        assert session.pages_opened == 2
        assert session.open_pages == 0


class TestLiveBoardExtractor:
    """Test the live filter interaction."""

    def test_clicks_filter(self, test_config):
        """Test the live filter is switched on first"""
        page = FakePage()
        LiveBoardExtractor(test_config).extract(FakePageSession(page), URL)

        assert page.clicks == 1
        assert page.filter_active

    def test_filter_already_active(self, test_config):
        """Test an active filter is not clicked again"""
        page = FakePage(filter_active=True)
        LiveBoardExtractor(test_config).extract(FakePageSession(page), URL)

        assert page.clicks == 0


class TestTodayExtractor:
    """Test the lazy-load scroll loop."""

    def test_scrolls_until_height_stable(self, test_config, fake_clock):
        """Test scrolling stops after a quiet window with no growth"""
        page = FakePage(heights=[1000, 2000, 3000, 3000])
        extractor = TodayExtractor(test_config, sleep=fake_clock.sleep, clock=fake_clock)

        extractor.extract(FakePageSession(page), URL)

        quiet = test_config.scroll.quiet_window
        poll = test_config.scroll.poll_interval
        # two growing scrolls, then enough unchanged polls to cover the quiet window
        assert page.scrolls == 2 + int(quiet / poll)

    def test_scroll_bounded_by_iteration_cap(self, test_config, fake_clock):
        """Test an ever-growing page stops at the cap"""
        test_config.scroll.max_iterations = 5
        page = FakePage(heights=list(range(100, 10000, 100)))
        extractor = TodayExtractor(test_config, sleep=fake_clock.sleep, clock=fake_clock)

        extractor.extract(FakePageSession(page), URL)

        assert page.scrolls == 5


class TestResultExtractor:
    """Test single match page extraction."""

    def test_score_extracted(self, test_config):
        """Test the result script output becomes the fragment score"""
        page = FakePage(payload={"rows": [], "scoreText": "2:1"})

        fragment = ResultExtractor(test_config).extract(FakePageSession(page), URL)

        assert fragment.score_text == "2:1"
        assert page.evaluated[0][0] == RESULT_SCRIPT
        assert page.waited_for == [test_config.selectors.result_score]
