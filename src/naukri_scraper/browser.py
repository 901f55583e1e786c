"""
Browser Session - Playwright-backed browsing capability
Owns the browser, its single context (cookie jar) and the current tab
"""

import logging
import random
import time
from pathlib import Path
from typing import Any, List, Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Page,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-gpu",
    "--disable-extensions",
    "--disable-infobars",
    "--disable-popup-blocking",
    "--disable-notifications",
    "--disable-features=UserAgentClientHint",
]

# Error text fragments meaning the browser process or its connection is gone
CRASH_MARKERS = (
    "crash",
    "disconnected",
    "target closed",
    "has been closed",
    "connection closed",
    "session",
)


class SessionLost(RuntimeError):
    """The browsing session can no longer be driven (e.g. original tab gone)."""


def is_session_crash(exc: BaseException) -> bool:
    """True when an error means the browser session died."""
    if isinstance(exc, SessionLost):
        return True
    text = str(exc).lower()
    return any(marker in text for marker in CRASH_MARKERS)


class BrowserSession:
    """Single browsing session handed by reference to every component.

    Tab handles are Playwright ``Page`` objects; element handles are
    ``ElementHandle`` objects. Nothing outside this class touches Playwright
    directly, so tests drive the pipeline with an in-memory double.
    """

    def __init__(self, config):
        self.config = config
        self.playwright = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self.screenshot_dir: Path = config.get_screenshot_dir()

    # === Lifecycle ===

    def start(self) -> None:
        """Launch Chromium and open the first tab"""
        logger.info("Starting browser...")
        self.playwright = sync_playwright().start()
        channel = self.config.get_browser_channel() or None
        executable_path = self.config.get_browser_executable_path() or None

        if executable_path and not Path(executable_path).exists():
            logger.warning("Browser executable not found: %s", executable_path)
            executable_path = None

        try:
            self.browser = self.playwright.chromium.launch(
                headless=self.config.is_headless(),
                channel=channel,
                executable_path=executable_path,
                timeout=self.config.get_launch_timeout(),
                args=LAUNCH_ARGS,
                ignore_default_args=["--enable-automation"],
            )

            context_kwargs = {
                "viewport": {"width": 1920, "height": 1080},
                "locale": "en-US",
            }
            user_agent = self.config.get_user_agent()
            if user_agent:
                context_kwargs["user_agent"] = user_agent
            self.context = self.browser.new_context(**context_kwargs)
            self.context.set_default_timeout(self.config.get_page_timeout())
            self.context.set_default_navigation_timeout(self.config.get_navigation_timeout())

            self.page = self._new_page()
        except Exception:
            self.stop()
            raise

        logger.info("Browser started successfully")

    def _new_page(self) -> Page:
        page = self.context.new_page()
        if self.config.use_stealth():
            try:
                from playwright_stealth.stealth import Stealth
                Stealth().apply_stealth_sync(page)
            except Exception as exc:
                logger.warning("Failed to enable stealth mode: %s", exc)
        return page

    def stop(self) -> None:
        """Clean up browser resources"""
        try:
            if self.context:
                self.context.close()
        except Exception:
            logger.debug("Browser context close failed", exc_info=True)
        try:
            if self.browser:
                self.browser.close()
        except Exception:
            logger.debug("Browser close failed", exc_info=True)
        try:
            if self.playwright:
                self.playwright.stop()
        except Exception:
            logger.debug("Playwright stop failed", exc_info=True)
        self.page = None
        self.context = None
        self.browser = None
        self.playwright = None
        logger.info("Browser closed")

    # === Navigation ===

    def navigate(self, url: str) -> None:
        self.page.goto(url, wait_until="domcontentloaded")

    def refresh(self) -> None:
        self.page.reload(wait_until="domcontentloaded")

    def current_url(self) -> str:
        return self.page.url or ""

    def content(self) -> str:
        return self.page.content() or ""

    # === Elements ===

    def find_one(self, locator: str, within: Any = None, timeout_ms: Optional[int] = None) -> Any:
        """First element matching locator, or None.

        With a timeout, waits for the element to be attached; absence after
        the timeout is a normal negative result.
        """
        root = within if within is not None else self.page
        if timeout_ms:
            try:
                return root.wait_for_selector(locator, timeout=timeout_ms, state="attached")
            except PlaywrightTimeoutError:
                return None
        return root.query_selector(locator)

    def find_all(self, locator: str, within: Any = None) -> List[Any]:
        root = within if within is not None else self.page
        return root.query_selector_all(locator)

    def text(self, element: Any) -> str:
        text = (element.inner_text() or "").strip()
        if not text:
            text = (element.text_content() or "").strip()
        return text

    def attribute(self, element: Any, name: str) -> Optional[str]:
        return element.get_attribute(name)

    def is_displayed(self, element: Any) -> bool:
        return element.is_visible()

    def click(self, element: Any) -> None:
        element.click()

    def fill(self, element: Any, value: str) -> None:
        element.fill(value)

    def scroll_into_view(self, element: Any) -> None:
        element.scroll_into_view_if_needed()

    def execute_script(self, script: str, arg: Any = None) -> Any:
        return self.page.evaluate(script, arg)

    # === Tabs ===

    def current_handle(self) -> Page:
        return self.page

    def open_tab(self, url: str) -> Page:
        """Open url in a new tab and make it current"""
        page = self._new_page()
        self.page = page
        page.goto(url, wait_until="domcontentloaded")
        return page

    def close_tab(self) -> None:
        self.page.close()

    def switch_to(self, handle: Page) -> None:
        if handle is None or handle.is_closed():
            raise SessionLost("Tab is no longer open")
        self.page = handle
        handle.bring_to_front()

    # === Cookies ===

    def cookies(self) -> List[dict]:
        return self.context.cookies()

    def add_cookie(self, cookie: dict) -> None:
        self.context.add_cookies([cookie])

    def clear_cookies(self) -> None:
        self.context.clear_cookies()

    # === Diagnostics & pacing ===

    def screenshot(self, name: str) -> Optional[Path]:
        """Best-effort diagnostic screenshot; never raises."""
        if self.page is None:
            return None
        try:
            self.screenshot_dir.mkdir(parents=True, exist_ok=True)
            path = self.screenshot_dir / name
            self.page.screenshot(path=str(path))
            logger.info("Screenshot saved as %s", path)
            return path
        except Exception as exc:
            logger.warning("Failed to take screenshot (%s): %s", name, exc)
            return None

    def pause(self, seconds: float) -> None:
        if seconds and seconds > 0:
            time.sleep(seconds)

    def pause_between(self, min_seconds: float, max_seconds: float) -> None:
        """Randomized pause to avoid a fixed request rhythm"""
        if max_seconds < min_seconds:
            max_seconds = min_seconds
        self.pause(random.uniform(min_seconds, max_seconds))
