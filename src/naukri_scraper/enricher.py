"""
Item Enricher - turns a result card into a JobRecord

Summary fields come from the card; description, skills and the application
pathway come from the job's own page, opened in a separate tab. The original
tab is always restored before returning.
"""

import logging
from typing import Any, Callable, Optional, Tuple
from urllib.parse import urljoin

from playwright.sync_api import Error as PlaywrightError

from . import locators
from .browser import SessionLost
from .config_loader import sanitize_for_filename
from .models import (
    NOT_AVAILABLE,
    NOT_DISCLOSED,
    NOT_SPECIFIED,
    ApplicationType,
    JobRecord,
    SearchContext,
)
from .resolver import candidates, find_displayed, read_attribute, read_text, resolve, resolve_with

logger = logging.getLogger(__name__)

read_title_attribute = read_attribute("title")

# Detail description must beat the card snippet by this many characters
DESCRIPTION_MIN_GAIN = 20


def assume_internal() -> ApplicationType:
    """Policy for pages with no standard Apply control.

    Unverified guess about the site: such pages are treated as in-site.
    """
    return ApplicationType.INTERNAL


def count_skills(value: str) -> int:
    if not value or value == NOT_AVAILABLE:
        return 0
    return len([part for part in value.split(",") if part.strip()])


def is_richer_description(candidate: str, current: str) -> bool:
    """Never regress to a shorter description"""
    if not candidate:
        return False
    if not current or current == NOT_AVAILABLE:
        return True
    return len(candidate) > len(current) + DESCRIPTION_MIN_GAIN


class ApplicationClassifier:
    """Ordered policy, first match wins: external control > missing Apply > Internal"""

    def __init__(
        self,
        session,
        external_locators=locators.EXTERNAL_APPLY,
        apply_locators=locators.STANDARD_APPLY,
        on_missing_apply: Callable[[], ApplicationType] = assume_internal,
    ):
        self.session = session
        self.external_locators = external_locators
        self.apply_locators = apply_locators
        self.on_missing_apply = on_missing_apply

    def _external_control(self) -> Optional[str]:
        for selector in self.external_locators:
            try:
                for element in self.session.find_all(selector):
                    if self.session.is_displayed(element):
                        return selector
            except PlaywrightError:
                continue
            except Exception as exc:
                logger.warning("Error checking external apply control %s: %s", selector, exc)
        return None

    def classify(self) -> ApplicationType:
        selector = self._external_control()
        if selector:
            logger.info("  External application detected (selector: %s)", selector)
            return ApplicationType.EXTERNAL

        if find_displayed(self.session, self.apply_locators) is None:
            decided = self.on_missing_apply()
            logger.warning(
                "  Could not find standard 'Apply' button, and no 'Apply on company site' "
                "control either. Ambiguous; assuming %s.", decided.value,
            )
            return decided

        return ApplicationType.INTERNAL


class ItemEnricher:
    """Builds and accepts one JobRecord per result card"""

    def __init__(
        self,
        session,
        config,
        context: SearchContext,
        on_missing_apply: Callable[[], ApplicationType] = assume_internal,
    ):
        self.session = session
        self.config = config
        self.context = context
        self.base_url = config.get_base_url()
        self.short_wait = config.get_short_wait()
        self.long_sleep = config.get_long_sleep_interval()
        self.classifier = ApplicationClassifier(session, on_missing_apply=on_missing_apply)
        self.screenshot_slug = sanitize_for_filename(context.query)

        # Link text first, then the tooltip on icon-only links
        self._title = candidates(locators.CARD_TITLE) + candidates(locators.CARD_TITLE, read_title_attribute)
        self._company = candidates(locators.CARD_COMPANY)
        self._location = candidates(locators.CARD_LOCATION)
        self._experience = candidates(locators.CARD_EXPERIENCE)
        self._salary = candidates(locators.CARD_SALARY)
        self._skills = candidates(locators.CARD_SKILLS, many=True)
        self._description = candidates(locators.CARD_DESCRIPTION)
        self._detail_description = candidates(locators.DETAIL_DESCRIPTION)
        self._detail_skills = candidates(locators.DETAIL_SKILLS, many=True)

    def _read_title_link(self, session, element) -> Optional[Tuple[str, str]]:
        href = (session.attribute(element, "href") or "").strip()
        if not href:
            return None
        title = (read_text(session, element) or "").strip()
        if not title:
            title = (read_title_attribute(session, element) or "").strip() or NOT_AVAILABLE
        return title, urljoin(self.base_url + "/", href)

    def _scroll(self, card: Any) -> None:
        try:
            self.session.scroll_into_view(card)
            self.session.pause(0.2)
        except PlaywrightError as exc:
            logger.debug("Scroll into view failed: %s", exc)

    def enrich(self, card: Any, index: int, state) -> Optional[JobRecord]:
        """Return the accepted record, or None when the card was skipped"""
        self._scroll(card)

        found = resolve_with(self.session, card, locators.CARD_TITLE, self._read_title_link)
        if not found:
            title = resolve(self.session, card, self._title, NOT_AVAILABLE)
            logger.warning("Skipping card %s on page %s: could not extract job URL. Title: %s",
                           index + 1, state.page, title)
            state.inc("skipped_no_url")
            return None
        title, url = found

        if state.is_known(url):
            logger.info("Skipping duplicate job (URL already seen): %s (%s...)", title, url[:50])
            state.inc("duplicates")
            return None

        logger.info("Processing NEW job %s (page %s): %s", index + 1, state.page, title)
        logger.info("  URL: %s", url)

        company = resolve(self.session, card, self._company, NOT_AVAILABLE)
        location = resolve(self.session, card, self._location, self.context.location)
        experience = resolve(self.session, card, self._experience, NOT_SPECIFIED)
        salary = resolve(self.session, card, self._salary, NOT_DISCLOSED)
        skills = resolve(self.session, card, self._skills, NOT_AVAILABLE)
        description = resolve(self.session, card, self._description, NOT_AVAILABLE)
        logger.debug("  Company: %s | Location: %s | Experience: %s | Salary: %s",
                     company, location, experience, salary)

        description, skills, application_type = self._visit_detail(url, title, index, description, skills)

        record = JobRecord(
            url=url,
            title=title,
            company=company,
            location=location,
            experience=experience,
            salary=salary,
            skills=skills,
            description=description,
            application_type=application_type,
            search_context=self.context,
        )

        if state.accept(record):
            kind = record.application_type
            logger.info("  Added %s job (%s/%s) to save list: %s",
                        kind.value.upper(), state.counts[kind], state.limit_for(kind), title)
            return record

        logger.info(
            "  Skipping job %s - limit reached for type %s (Internal: %s/%s, External: %s/%s).",
            title, application_type.value, state.internal_count, state.internal_limit,
            state.external_count, state.external_limit,
        )
        return None

    def _visit_detail(self, url: str, title: str, index: int,
                      description: str, skills: str) -> Tuple[str, str, ApplicationType]:
        application_type = ApplicationType.INTERNAL
        original = self.session.current_handle()
        try:
            logger.info("  Opening job details page in new tab...")
            self.session.open_tab(url)
            self.session.pause(self.long_sleep)

            # Keep walking the cascade until a candidate improves on the card
            current_description = description
            detail_description = resolve(
                self.session, None, self._detail_description, "", timeout_ms=self.short_wait,
                accept=lambda value: is_richer_description(value, current_description),
            )
            if detail_description:
                description = detail_description
                logger.info("  Found detailed job description on job page.")

            card_skill_count = count_skills(skills)
            detail_skills = resolve(
                self.session, None, self._detail_skills, "",
                accept=lambda value: count_skills(value) > card_skill_count,
            )
            if detail_skills:
                skills = detail_skills
                logger.info("  Found detailed skills on job page.")

            application_type = self.classifier.classify()
            logger.info("  Final application type: %s", application_type.value)
        except SessionLost:
            raise
        except Exception as exc:
            logger.error("  Error scraping details for %s: %s", title, exc)
            self.session.screenshot(f"detail_error_{self.screenshot_slug}_{index}.png")
        finally:
            self._return_to(original)
        return description, skills, application_type

    def _return_to(self, original: Any) -> None:
        try:
            if self.session.current_handle() is not original:
                self.session.close_tab()
        except Exception as exc:
            logger.warning("  Could not close job detail tab: %s", exc)
        try:
            self.session.switch_to(original)
        except Exception as exc:
            logger.error("  FATAL: Could not switch back to original tab: %s", exc)
            raise SessionLost("Failed to switch back to main window") from exc
        self.session.pause(0.5)
