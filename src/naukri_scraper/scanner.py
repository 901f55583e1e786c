"""
Listing Scanner - result container and job card discovery on a results page
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from . import locators
from .challenge import CAPTCHA, NO_RESULTS, ChallengeDetected, ContentMarkers
from .resolver import find_displayed

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Cards found on one results page"""

    cards: List[Any] = field(default_factory=list)
    exhausted: bool = False     # no further result pages are worth fetching
    card_locator: Optional[str] = None


class ListingScanner:
    """Resolves container then cards, each via an ordered locator cascade"""

    def __init__(
        self,
        session,
        config,
        captcha: ContentMarkers = CAPTCHA,
        no_results: ContentMarkers = NO_RESULTS,
    ):
        self.session = session
        self.config = config
        self.captcha = captcha
        self.no_results = no_results
        self.short_wait = config.get_short_wait()

    def _first_attached(self, selectors: Iterable[str], within: Any = None,
                        timeout_ms: Optional[int] = None) -> Optional[Tuple[str, Any]]:
        for selector in selectors:
            try:
                element = self.session.find_one(selector, within=within, timeout_ms=timeout_ms)
            except PlaywrightError:
                continue
            except Exception as exc:
                logger.warning("Error checking selector %s: %s", selector, exc)
                continue
            if element is not None:
                return selector, element
        return None

    def _find_cards(self, container: Any) -> Tuple[List[Any], Optional[str]]:
        """First card locator yielding any elements is authoritative"""
        for selector in locators.CARDS:
            try:
                cards = self.session.find_all(selector, within=container)
            except PlaywrightError:
                continue
            except Exception as exc:
                logger.warning("Error finding cards with %s: %s", selector, exc)
                continue
            if cards:
                logger.info("Found %s job cards using selector: %s", len(cards), selector)
                return list(cards), selector
        return [], None

    def _page_content(self) -> str:
        try:
            return self.session.content()
        except Exception as exc:
            logger.warning("Could not read page content: %s", exc)
            return ""

    def _no_results_shown(self) -> bool:
        match = find_displayed(self.session, locators.NO_RESULTS_MARKERS)
        if match:
            logger.info("Confirmed 'No results' message (%s).", match.locator)
            return True
        return False

    def scan(self, page: int) -> ScanResult:
        """Raises ChallengeDetected when the page is a CAPTCHA wall"""
        container = None
        found = self._first_attached(locators.RESULT_CONTAINERS, timeout_ms=self.short_wait)
        if found:
            logger.info("Job list container found using: %s", found[0])
            container = found[1]
        else:
            logger.warning("Could not find job list container with any known selector.")
            direct = self._first_attached(locators.DIRECT_CARDS)
            if direct:
                logger.info("Found job card with selector %s directly on page. Using the page as container.", direct[0])
            else:
                logger.error("Could not find job listings container or any job cards on page %s.", page)
                self.session.screenshot(f"page_{page}_no_elements_found.png")

                content = self._page_content()
                marker = self.captcha.find(content)
                if marker:
                    logger.error("CAPTCHA detected on results page! Stopping scraper.")
                    self.session.screenshot(f"page_{page}_captcha.png")
                    raise ChallengeDetected("CAPTCHA challenge detected on results page", marker)
                if self.no_results(content):
                    logger.info("Found 'No results' message. Likely end of search results.")
                    return ScanResult(exhausted=True)
                if page > 1:
                    logger.info("No jobs found on this page, assuming end of results.")
                    return ScanResult(exhausted=True)
                logger.warning("No jobs found on the first page. Check search query/location or website status.")
                return ScanResult()

        cards, card_locator = self._find_cards(container)
        if not cards:
            if page > 1:
                logger.info("No job cards found on page %s after finding container. Assuming end of results.", page)
                return ScanResult(exhausted=True)
            logger.warning("No job cards found on the first page, even after finding a container.")
            if self._no_results_shown():
                return ScanResult(exhausted=True)
            return ScanResult()

        return ScanResult(cards=cards, card_locator=card_locator)
