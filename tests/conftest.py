"""Pytest configuration and fixtures."""

import os
from datetime import datetime
from unittest.mock import Mock

import pytest

from config import MatchFeedConfig
from matchfeed.sources import SourceDescriptor
from matchfeed.utils.alerting import set_alert_manager

from fakes import TODAY, FakeClock, FakeSession


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep developer .env / shell overrides out of the tests."""
    for key in list(os.environ):
        if key.startswith(("MATCHFEED_", "TELEGRAM_")) or key in ("LOG_LEVEL", "LOG_DIR", "LOG_JSON", "PORT"):
            monkeypatch.delenv(key, raising=False)
    yield
    set_alert_manager(None)


@pytest.fixture
def test_config(tmp_path):
    """Configuration with no config file and no retry delays."""
    config = MatchFeedConfig(config_path=str(tmp_path / "missing.yaml"))
    config.retry.initial_wait = 0
    config.retry.max_wait = 0
    config.logging.dir = str(tmp_path / "logs")
    return config


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def fixed_now():
    return datetime(2026, 10, 19, 12, 0, 0)


@pytest.fixture
def make_row():
    """Factory for rows as the extraction script returns them."""
    def _make_row(
        home="Arsenal",
        away="Chelsea",
        link="/football/england/premier-league/arsenal-chelsea/AbC123/",
        date_text=None,
        status_text=None,
        status_class="table-main__eventStage",
        score=None,
        odds=("1.85", "3.60", "4.20"),
        winner=None,
        region=None,
        competition=None,
    ):
        slots = []
        for index, text in enumerate(odds):
            classes = ["table-main__odds"]
            if winner is not None and index == winner:
                classes.append("result-ok")
            slots.append({"text": text, "classes": classes})
        return {
            "homeTeam": home,
            "awayTeam": away,
            "matchLink": link,
            "dateText": date_text,
            "statusClass": status_class,
            "statusText": status_text,
            "scoreText": score,
            "odds": slots,
            "region": region,
            "competition": competition,
        }
    return _make_row


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def alert_manager():
    """Alert manager mock, installed as the global one."""
    manager = Mock()
    set_alert_manager(manager)
    return manager


@pytest.fixture
def mock_driver():
    """WebDriver mock with one base window."""
    driver = Mock()
    driver.current_window_handle = "base"
    driver.window_handles = ["base"]

    def new_window(kind):
        handle = f"tab-{len(driver.window_handles)}"
        driver.window_handles.append(handle)
        driver.current_window_handle = handle

    def switch(handle):
        driver.current_window_handle = handle

    def close():
        driver.window_handles.remove(driver.current_window_handle)

    driver.switch_to.new_window.side_effect = new_window
    driver.switch_to.window.side_effect = switch
    driver.close.side_effect = close
    return driver


@pytest.fixture
def three_sources():
    return [
        SourceDescriptor(region="England", competition="Premier League"),
        SourceDescriptor(region="England", competition="Championship"),
        SourceDescriptor(region="Spain", competition="LaLiga"),
    ]
