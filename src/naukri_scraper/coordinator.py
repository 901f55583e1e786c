"""
Run Coordinator - the outer page loop, crash recovery and persistence

One coordinating flow per run. Owns the RunState (known URLs, per-category
counts, accepted batch) and the single BrowserSession; every component gets
the session by reference and is rebuilt when the driver is reinitialized.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .browser import BrowserSession, SessionLost, is_session_crash
from .challenge import ChallengeDetected
from .config_loader import sanitize_for_filename
from .enricher import ItemEnricher, assume_internal
from .models import ApplicationType, JobRecord, SearchContext
from .navigator import SearchNavigator
from .output_writer import OutputWriter
from .run_state import RunState
from .scanner import ListingScanner
from .session_manager import SessionManager, SessionMode

logger = logging.getLogger(__name__)


class DriverInitError(RuntimeError):
    """Browser could not be started within the configured retries."""


@dataclass
class RunResult:
    """Outcome of one run. ok=False still may carry persisted records."""

    ok: bool
    records: List[JobRecord] = field(default_factory=list)
    aborted_reason: Optional[str] = None
    output_path: Optional[Path] = None
    summary_path: Optional[Path] = None
    session_mode: Optional[SessionMode] = None

    @property
    def internal_count(self) -> int:
        return sum(1 for r in self.records if r.application_type == ApplicationType.INTERNAL)

    @property
    def external_count(self) -> int:
        return sum(1 for r in self.records if r.application_type == ApplicationType.EXTERNAL)


class RunCoordinator:
    """Drives one scrape run from driver start to persisted output"""

    def __init__(
        self,
        config,
        store=None,
        session_factory: Callable = BrowserSession,
        writer: Optional[OutputWriter] = None,
        on_missing_apply: Callable[[], ApplicationType] = assume_internal,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.store = store
        self.session_factory = session_factory
        self.writer = writer or OutputWriter(config)
        self.on_missing_apply = on_missing_apply
        self.sleep = sleep

        self.context = SearchContext(
            query=config.get_query(),
            location=config.get_location(),
            experience=config.get_experience(),
        )
        self.state = RunState(
            internal_limit=config.get_internal_limit(),
            external_limit=config.get_external_limit(),
        )
        self.slug = sanitize_for_filename(self.context.query)

        self.session = None
        self.session_manager: Optional[SessionManager] = None
        self.navigator: Optional[SearchNavigator] = None
        self.scanner: Optional[ListingScanner] = None
        self.enricher: Optional[ItemEnricher] = None
        self.session_mode: Optional[SessionMode] = None

    # === Driver & session ===

    def _start_session(self):
        attempts = max(1, self.config.get_max_retries())
        backoff = self.config.get_retry_backoff()
        for attempt in range(1, attempts + 1):
            session = self.session_factory(self.config)
            try:
                logger.info("Initializing browser (attempt %s/%s)...", attempt, attempts)
                session.start()
                return session
            except Exception as exc:
                logger.error("Browser initialization failed on attempt %s: %s", attempt, exc)
                self.state.inc("driver_init_failures")
                if attempt >= attempts:
                    raise DriverInitError(
                        f"Failed to initialize browser after {attempts} attempts: {exc}"
                    ) from exc
                self.sleep(backoff)
        raise DriverInitError("Browser initialization was never attempted")

    def _build_pipeline(self, session) -> None:
        self.session = session
        self.session_manager = SessionManager(session, self.config)
        self.navigator = SearchNavigator(session, self.config, self.context)
        self.scanner = ListingScanner(session, self.config)
        self.enricher = ItemEnricher(session, self.config, self.context,
                                     on_missing_apply=self.on_missing_apply)

    def _establish(self) -> None:
        self.session_mode = self.session_manager.establish(
            self.config.get_email(), self.config.get_password()
        )
        logger.info("Session mode: %s", self.session_mode.value)
        self.state.record_event("session", mode=self.session_mode.value)

    def _stop_session(self) -> None:
        if self.session is None:
            return
        try:
            self.session.stop()
        except Exception as exc:
            logger.warning("Error closing browser: %s", exc)
        self.session = None

    def _recover(self, page: int, exc: BaseException) -> None:
        """Tear down and restart the browser; failure here is run-fatal"""
        logger.error("Session lost or browser crashed on page %s (%s). Attempting to reinitialize...", page, exc)
        self.state.inc("reinitializations")
        self.state.record_event("session_lost", page=page, error=str(exc))
        self._stop_session()
        self._build_pipeline(self._start_session())
        logger.info("Reinitialized browser. Re-establishing session...")
        self._establish()
        logger.info("Continuing scrape from the next page.")

    # === Page & card loops ===

    def _process_cards(self, cards: list, page: int) -> int:
        accepted = 0
        for index, card in enumerate(cards):
            if self.state.limits_reached():
                logger.info("Job limits reached, stopping card processing for this page.")
                break
            try:
                if self.enricher.enrich(card, index, self.state) is not None:
                    accepted += 1
            except SessionLost:
                raise
            except Exception as exc:
                if is_session_crash(exc):
                    raise
                logger.warning("Error processing job card %s on page %s: %s", index + 1, page, exc)
                self.state.inc("card_errors")
                self.session.screenshot(f"card_error_{self.slug}_{page}_{index}.png")
            self.session.pause_between(self.config.get_min_delay(), self.config.get_max_delay())
        return accepted

    def _page_loop(self) -> Optional[str]:
        """Returns an abort reason, or None when paging ended normally"""
        page = 1
        while self.navigator.should_fetch(page, self.state):
            self.state.page = page
            try:
                self.navigator.load(page)
                self.state.inc("pages_fetched")
                scan = self.scanner.scan(page)
                if scan.exhausted:
                    self.state.record_event("end_of_results", page=page)
                    break
                accepted = self._process_cards(scan.cards, page)
                logger.info("Finished processing %s new job cards on page %s.", accepted, page)
            except ChallengeDetected as exc:
                logger.error("CAPTCHA detected during page processing. Stopping scraper.")
                self.state.record_event("challenge", page=page, marker=exc.marker)
                return "captcha"
            except Exception as exc:
                if is_session_crash(exc):
                    self._recover(page, exc)
                    page += 1
                    continue
                logger.exception("Error processing page %s: %s", page, exc)
                self.state.inc("page_errors")
                self.session.screenshot(f"page_{page}_general_error_screenshot.png")

            page += 1
            self.session.pause_between(self.config.get_page_delay_min(), self.config.get_page_delay_max())
        return None

    # === Persistence ===

    def _persist(self, partial: bool = False) -> Optional[Path]:
        """JSON first, then the store. Neither failure stops the other."""
        records = list(self.state.accepted)
        if partial:
            logger.warning("Attempting to save %s partially collected new jobs before exit...", len(records))

        output_path = None
        try:
            output_path = self.writer.write_json(records)
        except OSError as exc:
            logger.error("Error saving JSON backup file: %s", exc)

        if self.config.is_markdown_enabled():
            try:
                self.writer.write_markdown(records, self.context)
            except OSError as exc:
                logger.error("Error saving Markdown report: %s", exc)

        if self.store is None or not records:
            if not records:
                logger.info("No new jobs were collected in this run to save.")
            return output_path

        if partial and not self.store.is_alive():
            logger.error("Store connection is not alive; partial results kept in JSON only.")
            return output_path
        try:
            counts = self.store.upsert_many(records)
            self.state.record_event("store_write", **counts)
        except Exception as exc:
            logger.error("Error writing jobs to the store: %s", exc)
        return output_path

    def _log_summary(self) -> None:
        logger.info("=== SCRAPING SUMMARY ===")
        logger.info("Internal jobs collected (new): %s", self.state.internal_count)
        logger.info("External jobs collected (new): %s", self.state.external_count)
        logger.info("Total new unique jobs collected: %s", len(self.state.accepted))
        logger.info("Total unique job URLs tracked (store + session): %s", len(self.state.known_urls))

    def _write_summary(self, aborted_reason: Optional[str]) -> Optional[Path]:
        path = self.config.get_summary_path()
        if path is None:
            return None
        extra = {
            "query": self.context.query,
            "location": self.context.location,
            "experience": self.context.experience,
            "session_mode": self.session_mode.value if self.session_mode else None,
            "aborted_reason": aborted_reason,
        }
        try:
            return self.state.write_json(path, extra=extra)
        except OSError as exc:
            logger.warning("Could not write run summary: %s", exc)
            return None

    # === Entry point ===

    def run(self) -> RunResult:
        logger.info("Starting scrape for %s", self.context)
        aborted_reason = None
        output_path = None
        try:
            if self.store is not None:
                seeded = self.state.seed(self.store.scan_keys())
                logger.info("Seeded %s known job URLs from the store", seeded)

            self._build_pipeline(self._start_session())
            self._establish()

            aborted_reason = self._page_loop()
            self._log_summary()
            output_path = self._persist()
        except Exception as exc:
            logger.exception("--- FATAL SCRAPER ERROR --- %s", exc)
            aborted_reason = aborted_reason or f"fatal: {exc}"
            output_path = self._persist(partial=True)
        finally:
            self._stop_session()
            self.state.finish()

        summary_path = self._write_summary(aborted_reason)
        return RunResult(
            ok=aborted_reason is None,
            records=list(self.state.accepted),
            aborted_reason=aborted_reason,
            output_path=output_path,
            summary_path=summary_path,
            session_mode=self.session_mode,
        )
