"""
Search Navigator - search URL construction and page-loop control
"""

import logging
import re

from .models import SearchContext

logger = logging.getLogger(__name__)


def normalize_term(term: str) -> str:
    """'Data  Analyst' -> 'data-analyst'"""
    return re.sub(r"\s+", "-", (term or "").strip().lower())


def experience_filter_enabled(experience: str) -> bool:
    value = (experience or "").strip()
    return bool(value) and value != "0"


def build_search_url(base_url: str, context: SearchContext, page: int = 1) -> str:
    """Results URL for a 1-based page number"""
    url = f"{base_url.rstrip('/')}/{normalize_term(context.query)}-jobs-in-{normalize_term(context.location)}"
    separator = "?"
    if experience_filter_enabled(context.experience):
        url += f"?experience={context.experience.strip()}"
        separator = "&"
    if page > 1:
        url += f"{separator}pageNo={page}"
    return url


class SearchNavigator:
    """Drives sequential result-page loads"""

    def __init__(self, session, config, context: SearchContext):
        self.session = session
        self.config = config
        self.context = context
        self.base_url = config.get_base_url()
        self.max_pages = config.get_max_pages()
        self.settle_delay = config.get_settle_delay()

    def url_for(self, page: int) -> str:
        return build_search_url(self.base_url, self.context, page)

    def should_fetch(self, page: int, state) -> bool:
        """Both stop conditions, checked before every page fetch"""
        if state.limits_reached():
            logger.info(
                "Reached job limits (Internal: %s, External: %s). Stopping search.",
                state.internal_count, state.external_count,
            )
            return False
        if page > self.max_pages:
            logger.info("Reached page cap (%s). Stopping search.", self.max_pages)
            return False
        return True

    def load(self, page: int) -> str:
        url = self.url_for(page)
        logger.info("--- Scraping Page %s/%s ---", page, self.max_pages)
        logger.info("Navigating to: %s", url)
        self.session.navigate(url)
        # client-side rendering of the result list
        self.session.pause(self.settle_delay)
        return url
