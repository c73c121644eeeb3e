"""Page extractors.

An extractor turns (session, url) into a RawFragment: open a page context,
navigate, wait for the page to settle, run the page-specific preparation,
run the extraction script and validate its output. Any failure along the
way surfaces as ExtractionFailed; the page context is closed regardless.
"""

import logging
import time
from dataclasses import asdict
from typing import Callable, Optional

from selenium.common.exceptions import TimeoutException, WebDriverException
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import MatchFeedConfig

from ...core.exceptions import ExtractionFailed, SessionNotReady
from .browser import BrowserSession, Page
from .models import RawFragment
from .scripts import RESULT_SCRIPT, ROWS_SCRIPT

logger = logging.getLogger(__name__)


class PageExtractor:
    """Base extractor: navigation, settle wait and script evaluation."""

    script = ROWS_SCRIPT

    def __init__(self, config: MatchFeedConfig):
        self.config = config
        self.selectors = asdict(config.selectors)

    @property
    def ready_selector(self) -> str:
        """Element whose presence means the content has rendered."""
        return self.config.selectors.content_ready

    def extract(self, session: Optional[BrowserSession], url: str) -> RawFragment:
        """
        Extract one page.

        Args:
            session: Live browser session
            url: Page to load

        Returns:
            RawFragment with the rows (or score) the page showed

        Raises:
            SessionNotReady: If no live session was supplied
            ExtractionFailed: On navigation, wait, script or shape failure
        """
        if session is None or not session.is_alive:
            raise SessionNotReady()

        try:
            with session.page() as page:
                self._navigate(page, url)
                page.wait_until_settled()
                page.wait_for(self.ready_selector)
                self._prepare(page)
                payload = page.evaluate(self.script, self.selectors)
                fragment = RawFragment.from_script_output(url, payload)
        except SessionNotReady:
            raise
        except (WebDriverException, ValueError) as e:
            raise ExtractionFailed(url, e) from e

        logger.debug(f"Extracted {len(fragment.rows)} row(s) from {url}")
        return fragment

    def _navigate(self, page: Page, url: str):
        """Load ``url``, retrying page-load timeouts with exponential backoff."""
        retry = self.config.retry
        retrying = Retrying(
            stop=stop_after_attempt(retry.max_attempts),
            wait=wait_exponential(multiplier=retry.initial_wait, max=retry.max_wait),
            retry=retry_if_exception_type(TimeoutException),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                page.goto(url)

    def _prepare(self, page: Page):
        """Page-specific interaction before extraction. Nothing by default."""


class FixturesExtractor(PageExtractor):
    """A single competition's fixtures page."""


class TodayExtractor(PageExtractor):
    """The aggregate "today" view, which lazily loads rows on scroll."""

    def __init__(
        self,
        config: MatchFeedConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(config)
        self._sleep = sleep
        self._clock = clock

    def _prepare(self, page: Page):
        """Scroll to the bottom until the height stops growing.

        Stops once the height has been unchanged for the quiet window, or
        after the iteration cap, whichever comes first.
        """
        scroll = self.config.scroll
        last_height = page.scroll_height()
        last_change = self._clock()

        for iteration in range(1, scroll.max_iterations + 1):
            page.scroll_to_bottom()
            self._sleep(scroll.poll_interval)
            height = page.scroll_height()
            if height != last_height:
                last_height = height
                last_change = self._clock()
            elif self._clock() - last_change >= scroll.quiet_window:
                logger.debug(f"Scroll settled after {iteration} iteration(s) at height {height}")
                return

        logger.warning(f"Scroll did not settle within {scroll.max_iterations} iterations")


class LiveBoardExtractor(PageExtractor):
    """The live board, shown only after its live filter is switched on."""

    def _prepare(self, page: Page):
        selectors = self.config.selectors
        if page.click_filter(selectors.live_filter, selectors.live_filter_active_class):
            page.wait_until_settled()
            page.wait_for(self.ready_selector)


class ResultExtractor(PageExtractor):
    """A single match page, read for its final score."""

    script = RESULT_SCRIPT

    @property
    def ready_selector(self) -> str:
        return self.config.selectors.result_score
