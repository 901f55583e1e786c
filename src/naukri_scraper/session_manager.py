"""
Session Manager - cookie restore, login, and login-state checks

NoSession -> CookiesRestored -> LoggedIn | RestoreFailed -> LoggedIn | Anonymous
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Optional

from . import locators
from .challenge import LOGIN_CHALLENGE, ContentMarkers
from .resolver import find_displayed

logger = logging.getLogger(__name__)


class SessionMode(str, Enum):
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class SessionManager:
    """Establishes an authenticated or anonymous session on one BrowserSession"""

    def __init__(self, session, config, challenge: ContentMarkers = LOGIN_CHALLENGE):
        self.session = session
        self.config = config
        self.cookie_file: Path = config.get_cookie_file()
        self.challenge = challenge
        self.base_url = config.get_base_url()
        self.short_wait = config.get_short_wait()
        self.sleep = config.get_sleep_interval()
        self.long_sleep = config.get_long_sleep_interval()

    # === Cookies ===

    def _normalize_cookie(self, cookie: dict, same_site: bool) -> Optional[dict]:
        name = cookie.get("name")
        value = cookie.get("value")
        if not name or value is None or value == "":
            return None

        normalized = {
            "name": name,
            "value": value,
            "path": cookie.get("path") or "/",
            "secure": bool(cookie.get("secure")),
            "httpOnly": bool(cookie.get("httpOnly")),
        }
        domain = cookie.get("domain")
        if same_site:
            domain = domain or ".naukri.com"
            if not domain.startswith(".") and "naukri.com" in domain and domain != "naukri.com":
                domain = "." + domain
        if domain:
            normalized["domain"] = domain
        else:
            # Playwright needs either a domain or a url
            normalized["url"] = self.base_url
            normalized.pop("path")

        expires = cookie.get("expires", cookie.get("expiry"))
        if isinstance(expires, (int, float)) and expires > 0:
            normalized["expires"] = expires
        if cookie.get("sameSite") in ("Strict", "Lax", "None"):
            normalized["sameSite"] = cookie["sameSite"]
        return normalized

    def restore_session(self) -> bool:
        """Inject stored cookies. True means 'attempted', not 'logged in'."""
        if not self.cookie_file.exists():
            logger.info("No saved cookies file found.")
            return False

        try:
            logger.info("Found saved cookies. Attempting to restore session...")
            stored = json.loads(self.cookie_file.read_text(encoding="utf-8"))
            if not isinstance(stored, list):
                raise ValueError("cookie file does not hold a list")

            self.session.navigate(self.base_url)
            self.session.pause(self.sleep)

            self.session.clear_cookies()
            self.session.pause(1)

            same_site = [c for c in stored if locators.SITE_DOMAIN in (c.get("domain") or "")]
            others = [c for c in stored if locators.SITE_DOMAIN not in (c.get("domain") or "")]

            for cookie in same_site:
                self._add_cookie(cookie, same_site=True)
            for cookie in others:
                self._add_cookie(cookie, same_site=False)

            logger.info("Cookies applied. Refreshing page to activate session...")
            self.session.refresh()
            self.session.pause(self.long_sleep)
            # A second refresh helps the server pick the session up
            self.session.refresh()
            self.session.pause(self.short_wait / 1000)
            return True
        except Exception as exc:
            logger.error("Error restoring cookies: %s", exc)
            self.discard_session()
            return False

    def _add_cookie(self, cookie: dict, same_site: bool) -> None:
        normalized = self._normalize_cookie(cookie, same_site)
        if normalized is None:
            return
        try:
            self.session.add_cookie(normalized)
        except Exception as exc:
            logger.warning("Cookie error (ignored): %s - %s", cookie.get("name"), exc)

    def save_session(self) -> bool:
        """Persist the current cookie jar for the next run"""
        try:
            logger.info("Saving cookies for future sessions...")
            cookies = self.session.cookies()
            self.cookie_file.parent.mkdir(parents=True, exist_ok=True)
            self.cookie_file.write_text(json.dumps(cookies, indent=2), encoding="utf-8")
            logger.info("Cookies saved to %s", self.cookie_file)
            return True
        except Exception as exc:
            logger.error("Error saving cookies: %s", exc)
            return False

    def discard_session(self) -> None:
        """Drop the stored cookie file (corrupt or no longer valid)"""
        try:
            if self.cookie_file.exists():
                self.cookie_file.unlink()
                logger.info("Removed stored cookies file %s", self.cookie_file)
        except OSError as exc:
            logger.error("Error removing cookies file: %s", exc)

    # === Login state ===

    def is_authenticated(self) -> bool:
        """Fail closed: anything short of positive evidence means logged out"""
        logger.info("Checking login status...")

        try:
            current_url = self.session.current_url()
            if any(marker in current_url for marker in locators.MEMBER_URL_MARKERS):
                logger.info("User appears to be logged in (URL: %s)", current_url)
                return True
        except Exception as exc:
            logger.warning("Could not get current URL during login check: %s", exc)

        probe_timeout = self.short_wait // 2
        match = find_displayed(self.session, locators.LOGGED_IN_INDICATORS, timeout_ms=probe_timeout)
        if match:
            logger.info("User is logged in (found indicator: %s)", match.locator)
            return True

        match = find_displayed(self.session, locators.LOGGED_OUT_INDICATORS, timeout_ms=probe_timeout)
        if match:
            logger.info("User is not logged in (found login control: %s)", match.locator)
            return False

        self.session.screenshot("login_check_state.png")
        logger.info("Could not determine login status from page indicators. Assuming not logged in.")
        return False

    # === Login ===

    def _find_email_field(self):
        return find_displayed(self.session, locators.EMAIL_INPUTS, timeout_ms=self.short_wait)

    def _open_login_form(self):
        """Navigate to a login entry point and return the email field match"""
        self.session.navigate(self.config.get_login_url())
        self.session.pause(self.long_sleep)

        if "login" not in self.session.current_url():
            logger.info("Not on login page - trying the login link from the homepage")
            match = find_displayed(self.session, locators.HOMEPAGE_LOGIN_LINKS, timeout_ms=self.short_wait)
            if match:
                self.session.click(match.element)
                logger.info("Clicked homepage login link: %s", match.locator)
                self.session.pause(self.long_sleep)
            else:
                logger.warning("Could not find a visible login link on the homepage.")

        email_field = self._find_email_field()
        if email_field is None:
            logger.info("Email field not found, trying the fallback login URL...")
            self.session.navigate(self.config.get_fallback_login_url())
            self.session.pause(self.long_sleep)
            email_field = self._find_email_field()
        return email_field

    def _click_submit(self, button) -> bool:
        try:
            self.session.scroll_into_view(button)
            self.session.pause(0.5)
            self.session.click(button)
            logger.info("Clicked login button")
            return True
        except Exception as exc:
            logger.warning("Direct click failed (%s), trying script click...", exc)
        try:
            self.session.execute_script("el => el.click()", button)
            logger.info("Clicked login button using script")
            return True
        except Exception as exc:
            logger.error("Script click also failed: %s", exc)
            return False

    def _log_login_error(self) -> None:
        for selector in locators.LOGIN_ERROR_MESSAGES:
            try:
                for element in self.session.find_all(selector):
                    if not self.session.is_displayed(element):
                        continue
                    message = self.session.text(element)
                    if message:
                        logger.error("Login failed. Error message found: %s", message)
                        return
            except Exception:
                continue
        logger.warning("No error message found on page after failed login attempt.")

    def login(self, email: str, password: str) -> bool:
        """Interactive login. Challenges (CAPTCHA/OTP) end the attempt."""
        if not email or not password:
            logger.info("Email or password not provided. Skipping login attempt.")
            return False

        try:
            logger.info("Attempting login to Naukri...")
            email_match = self._open_login_form()
            if email_match is None:
                logger.error("Failed to reach a login form after multiple attempts.")
                self.session.screenshot("login_page_fail_screenshot.png")
                return False

            logger.info("Found email field with selector: %s", email_match.locator)
            self.session.fill(email_match.element, email)
            self.session.pause(0.5)

            password_match = find_displayed(self.session, locators.PASSWORD_INPUTS, timeout_ms=self.short_wait)
            if password_match is None:
                logger.error("Failed to locate password input field")
                self.session.screenshot("login_password_fail_screenshot.png")
                return False
            self.session.fill(password_match.element, password)
            self.session.pause(0.5)

            button_match = find_displayed(self.session, locators.LOGIN_BUTTONS, timeout_ms=self.short_wait)
            if button_match is None:
                logger.error("Failed to locate a clickable login button")
                self.session.screenshot("login_button_fail_screenshot.png")
                return False
            if not self._click_submit(button_match.element):
                self.session.screenshot("login_click_fail_screenshot.png")
                return False

            self.session.pause(self.long_sleep * 1.5)

            marker = self.challenge.find(self.session.content())
            if marker:
                logger.error("Login challenge detected (%s)! Login requires human intervention.", marker)
                self.session.screenshot("login_challenge_screenshot.png")
                return False

            if self.is_authenticated():
                logger.info("Login successful!")
                return True

            logger.warning("Login verification failed after submitting the form.")
            self._log_login_error()
            self.session.screenshot("login_verify_fail_screenshot.png")
            return False
        except Exception as exc:
            logger.exception("Error during login process: %s", exc)
            self.session.screenshot("login_fatal_error_screenshot.png")
            return False

    # === Full establishment ===

    def establish(self, email: str = "", password: str = "") -> SessionMode:
        """Restore cookies, fall back to credentials, else browse anonymously"""
        if self.restore_session():
            if self.is_authenticated():
                logger.info("Successfully restored session using cookies.")
                return SessionMode.AUTHENTICATED
            logger.warning("Restored cookies, but login status check failed. Discarding them.")
            try:
                self.session.clear_cookies()
            except Exception as exc:
                logger.warning("Could not clear browser cookies: %s", exc)
            self.discard_session()
        else:
            logger.info("Could not restore session from cookies.")

        if not email or not password:
            logger.info("Email/password not provided. Proceeding without login.")
            return SessionMode.ANONYMOUS

        if self.login(email, password):
            self.save_session()
            return SessionMode.AUTHENTICATED

        logger.warning("Login failed. Proceeding without login (results might be limited).")
        return SessionMode.ANONYMOUS
