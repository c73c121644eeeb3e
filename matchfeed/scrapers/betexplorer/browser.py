"""Browser session lifecycle and page contexts.

One headless Chrome session is alive at a time, owned by the SessionManager.
Extractions never share a page context: each opens its own tab and the tab is
closed on every exit path.
"""

import logging
import os
import platform
import threading
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional

from selenium import webdriver
from selenium.common.exceptions import NoSuchElementException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from config import MatchFeedConfig, TimeoutConfig

from ...core.exceptions import BrowserError, SessionAlreadyActive, SessionNotReady

logger = logging.getLogger(__name__)

_RESOURCE_COUNT_JS = "return window.performance.getEntriesByType('resource').length;"

_LINUX_CHROME_PATHS = [
    '/usr/bin/chromium',
    '/usr/bin/chromium-browser',
    '/usr/bin/google-chrome',
    '/usr/bin/google-chrome-stable',
]
_MAC_CHROME_PATH = '/Applications/Google Chrome.app/Contents/MacOS/Google Chrome'


class ChromeDriverFactory:
    """Creates configured headless Chrome WebDrivers."""

    def __init__(self, config: MatchFeedConfig):
        self.config = config

    def __call__(self) -> webdriver.Chrome:
        chrome_options = self._configure_options()

        chrome_bin = self._find_chrome_binary()
        if chrome_bin:
            chrome_options.binary_location = chrome_bin
            logger.info(f"Using Chrome binary: {chrome_bin}")
        else:
            logger.info("Chrome binary not specified or not found, using system default")

        chromedriver_path = os.getenv('CHROMEDRIVER_PATH')
        if chromedriver_path and os.path.exists(chromedriver_path):
            logger.info(f"Using pre-installed ChromeDriver at: {chromedriver_path}")
            driver_path = chromedriver_path
        else:
            logger.info("CHROMEDRIVER_PATH not set or not found, using webdriver_manager")
            driver_path = ChromeDriverManager().install()

        driver = webdriver.Chrome(service=Service(driver_path), options=chrome_options)
        driver.set_page_load_timeout(self.config.timeouts.page_load)
        driver.set_script_timeout(self.config.timeouts.script_timeout)
        return driver

    @staticmethod
    def _find_chrome_binary() -> Optional[str]:
        chrome_bin = os.getenv('CHROME_BIN')
        if chrome_bin and os.path.exists(chrome_bin):
            return chrome_bin

        system = platform.system()
        if system == 'Linux':
            for path in _LINUX_CHROME_PATHS:
                if os.path.exists(path):
                    return path
        elif system == 'Darwin' and os.path.exists(_MAC_CHROME_PATH):
            return _MAC_CHROME_PATH
        return None

    def _configure_options(self) -> Options:
        """Configure Chrome options for unattended crawling."""
        browser = self.config.browser
        chrome_options = Options()

        chrome_options.add_argument("--no-sandbox")
        chrome_options.add_argument("--disable-dev-shm-usage")
        chrome_options.add_argument("--disable-setuid-sandbox")

        width, height = browser.window_size.split('x')
        chrome_options.add_argument(f"--window-size={width},{height}")

        prefs = {
            "profile.managed_default_content_settings.images": 2 if browser.block_images else 1,
            "profile.default_content_setting_values.notifications": 2,
            "profile.managed_default_content_settings.popups": 2,
        }
        chrome_options.add_experimental_option("prefs", prefs)

        chrome_options.add_argument("--disable-gpu")
        chrome_options.add_argument("--disable-extensions")
        chrome_options.add_argument("--disable-background-networking")
        chrome_options.add_argument("--disable-renderer-backgrounding")
        chrome_options.add_argument("--mute-audio")
        chrome_options.add_argument("--log-level=3")

        chrome_options.add_argument("--disable-blink-features=AutomationControlled")
        chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])
        chrome_options.add_argument(f"user-agent={browser.user_agent}")

        if browser.headless:
            chrome_options.add_argument("--headless=new")

        return chrome_options


class Page:
    """One page context (browser tab) bound to a session."""

    def __init__(
        self,
        driver,
        handle: str,
        timeouts: TimeoutConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.driver = driver
        self.handle = handle
        self.timeouts = timeouts
        self._sleep = sleep
        self._clock = clock

    def goto(self, url: str):
        """Navigate; raises TimeoutException when the page load timeout hits."""
        logger.debug(f"Navigating to {url}")
        self.driver.get(url)

    def wait_for(self, selector: str, timeout: Optional[float] = None):
        """Wait until ``selector`` is present; raises TimeoutException otherwise."""
        if timeout is None:
            timeout = self.timeouts.element_wait
        WebDriverWait(self.driver, timeout).until(
            EC.presence_of_element_located((By.CSS_SELECTOR, selector))
        )

    def wait_until_settled(self, quiet: Optional[float] = None, timeout: Optional[float] = None) -> bool:
        """Wait for document ready, then for network activity to go quiet.

        Network idle is approximated by the resource-timing entry count
        staying unchanged for ``quiet`` seconds.

        Returns:
            True if the page went quiet, False if ``timeout`` elapsed first
        """
        quiet = self.timeouts.settle_quiet if quiet is None else quiet
        timeout = self.timeouts.settle_max if timeout is None else timeout

        WebDriverWait(self.driver, self.timeouts.page_load).until(
            lambda d: d.execute_script("return document.readyState") == "complete"
        )

        deadline = self._clock() + timeout
        last_count = self.driver.execute_script(_RESOURCE_COUNT_JS)
        stable_since = self._clock()
        while self._clock() < deadline:
            self._sleep(min(quiet, 0.25) or 0.05)
            count = self.driver.execute_script(_RESOURCE_COUNT_JS)
            if count != last_count:
                last_count = count
                stable_since = self._clock()
            elif self._clock() - stable_since >= quiet:
                return True

        logger.debug(f"Page did not go quiet within {timeout}s, continuing")
        return False

    def evaluate(self, script: str, *args):
        """Run a script in the page and return its (JSON-like) result."""
        return self.driver.execute_script(script, *args)

    def scroll_height(self) -> int:
        return int(self.driver.execute_script("return document.body.scrollHeight;") or 0)

    def scroll_to_bottom(self):
        self.driver.execute_script("window.scrollTo(0, document.body.scrollHeight);")

    def click_filter(self, selector: str, active_class: str) -> bool:
        """Activate a UI filter unless it is already active.

        Returns:
            True if a click was performed, False if the filter was already on

        Raises:
            NoSuchElementException: If the filter is not on the page
        """
        elements = self.driver.find_elements(By.CSS_SELECTOR, selector)
        if not elements:
            raise NoSuchElementException(f"Filter not found: {selector}")

        element = elements[0]
        classes = (element.get_attribute('class') or '').split()
        if active_class in classes:
            logger.debug(f"Filter {selector} already active")
            return False

        try:
            element.click()
        except WebDriverException:
            self.driver.execute_script("arguments[0].click();", element)
            logger.debug(f"Activated {selector} via JavaScript")
        return True


class BrowserSession:
    """One live headless-browser instance."""

    def __init__(
        self,
        driver,
        timeouts: TimeoutConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.driver = driver
        self.timeouts = timeouts
        self.created_at = datetime.now()
        self.open_pages = 0
        self._sleep = sleep
        self._clock = clock
        self._base_handle = driver.current_window_handle
        self._closed = False

    @property
    def is_alive(self) -> bool:
        return not self._closed

    @contextmanager
    def page(self) -> Iterator[Page]:
        """Open an isolated page context, closing it on every exit path.

        Raises:
            SessionNotReady: If the session has been closed
        """
        if self._closed:
            raise SessionNotReady("Browser session already closed")

        self.driver.switch_to.new_window('tab')
        handle = self.driver.current_window_handle
        self.open_pages += 1
        try:
            yield Page(self.driver, handle, self.timeouts, sleep=self._sleep, clock=self._clock)
        finally:
            self._close_page(handle)

    def _close_page(self, handle: str):
        self.open_pages -= 1
        try:
            if handle in self.driver.window_handles:
                self.driver.switch_to.window(handle)
                self.driver.close()
        except WebDriverException as e:
            logger.warning(f"Failed to close page context {handle}: {e}")
        finally:
            try:
                self.driver.switch_to.window(self._base_handle)
            except WebDriverException as e:
                logger.warning(f"Failed to return to base window: {e}")

    def close(self):
        """Quit the browser. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self.driver.quit()
            logger.info("Browser closed")
        except WebDriverException as e:
            logger.warning(f"Error closing browser: {e}")


class SessionManager:
    """Owns the single browser session of the process.

    The session is created at cycle start and destroyed at cycle end,
    whatever the outcome. Nothing else holds a long-lived reference to it.
    """

    def __init__(
        self,
        config: MatchFeedConfig,
        driver_factory: Optional[Callable[[], object]] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the manager.

        Args:
            config: Crawler configuration
            driver_factory: Zero-argument callable returning a WebDriver.
                Defaults to a headless Chrome factory.
            sleep: Sleep function handed to pages (tests pass a fake)
            clock: Monotonic clock handed to pages (tests pass a fake)
        """
        self.config = config
        self._driver_factory = driver_factory or ChromeDriverFactory(config)
        self._sleep = sleep
        self._clock = clock
        self._session: Optional[BrowserSession] = None
        self._release_lock = threading.Lock()

    @property
    def current(self) -> Optional[BrowserSession]:
        return self._session

    def acquire(self) -> BrowserSession:
        """Create a new isolated browser session.

        Raises:
            SessionAlreadyActive: If a session is already alive
            BrowserError: If driver creation fails
        """
        if self._session is not None:
            raise SessionAlreadyActive("A browser session is already active")

        try:
            driver = self._driver_factory()
        except Exception as e:
            raise BrowserError(f"Failed to create browser: {e}") from e

        try:
            self._session = BrowserSession(
                driver, self.config.timeouts, sleep=self._sleep, clock=self._clock
            )
        except WebDriverException as e:
            driver.quit()
            raise BrowserError(f"Browser unusable after start: {e}") from e

        logger.info("Browser session created")
        return self._session

    def release(self):
        """Tear down the live session, if any. The handle is always cleared.

        Safe to call from another thread than the one crawling; the crawl then
        fails with ExtractionFailed or SessionNotReady.
        """
        with self._release_lock:
            session, self._session = self._session, None
        if session is not None:
            session.close()

    def replace(self) -> BrowserSession:
        """Release the current session (if any) and acquire a fresh one."""
        self.release()
        return self.acquire()

    def require(self) -> BrowserSession:
        """Return the live session.

        Raises:
            SessionNotReady: If no session is alive
        """
        if self._session is None or not self._session.is_alive:
            raise SessionNotReady()
        return self._session

    @contextmanager
    def session(self) -> Iterator[BrowserSession]:
        """Acquire for the duration of a block, releasing regardless of outcome."""
        session = self.acquire()
        try:
            yield session
        finally:
            self.release()
