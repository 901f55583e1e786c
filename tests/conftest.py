import copy
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml
from playwright.sync_api import Error as PlaywrightError

from naukri_scraper.config_loader import ENV_OVERRIDES, ConfigLoader

BASE_URL = "https://www.naukri.com"
SEARCH_URL = f"{BASE_URL}/data-analyst-jobs-in-bangalore"


class FakeElement:
    """In-memory element: text, attributes and child elements keyed by locator"""

    def __init__(self, text: str = "", attrs: Optional[Dict[str, str]] = None,
                 children: Optional[Dict[str, List["FakeElement"]]] = None,
                 visible: bool = True, stale: bool = False,
                 on_click: Optional[Callable] = None, click_error: Optional[Exception] = None):
        self.text = text
        self.attrs = attrs or {}
        self.children = children or {}
        self.visible = visible
        self.stale = stale
        self.on_click = on_click
        self.click_error = click_error
        self.clicks = 0
        self.value = None

    def find(self, locator: str) -> List["FakeElement"]:
        return list(self.children.get(locator, []))


class FakeDocument(FakeElement):
    """A loaded page: url, raw content and top-level elements"""

    def __init__(self, url: str, children=None, content: str = ""):
        super().__init__(children=children)
        self.url = url
        self.content = content


class FakeTab:
    def __init__(self, doc: FakeDocument):
        self.doc = doc
        self.closed = False


class FakeSession:
    """Browser capability over a dict of url -> FakeDocument (or Exception)"""

    def __init__(self, site: Optional[Dict[str, Any]] = None):
        self.site = site if site is not None else {}
        self.tab = FakeTab(FakeDocument("about:blank"))
        self.tabs = [self.tab]
        self.navigations: List[str] = []
        self.opened: List[str] = []
        self.find_calls: List[str] = []
        self.screenshots: List[str] = []
        self.scripts: List[str] = []
        self.cookie_jar: List[dict] = []
        self.pauses: List[float] = []
        self.refreshes = 0
        self.cleared_cookies = 0
        self.started = False
        self.stopped = False
        self.start_error: Optional[Exception] = None
        self.fail_switch = False

    # lifecycle
    def start(self):
        if self.start_error:
            raise self.start_error
        self.started = True

    def stop(self):
        self.stopped = True

    def _load(self, url: str) -> FakeDocument:
        entry = self.site.get(url)
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            entry = entry()
        return entry if entry is not None else FakeDocument(url)

    # navigation
    def navigate(self, url: str):
        self.navigations.append(url)
        self.tab.doc = self._load(url)

    def refresh(self):
        self.refreshes += 1

    def current_url(self) -> str:
        return self.tab.doc.url

    def content(self) -> str:
        return self.tab.doc.content

    # elements
    def find_all(self, locator: str, within=None) -> List[FakeElement]:
        self.find_calls.append(locator)
        root = within if within is not None else self.tab.doc
        return root.find(locator)

    def find_one(self, locator: str, within=None, timeout_ms=None):
        found = self.find_all(locator, within=within)
        return found[0] if found else None

    def _check(self, element: FakeElement):
        if element.stale:
            raise PlaywrightError("Element is not attached to the DOM")

    def text(self, element) -> str:
        self._check(element)
        return element.text

    def attribute(self, element, name: str):
        self._check(element)
        return element.attrs.get(name)

    def is_displayed(self, element) -> bool:
        self._check(element)
        return element.visible

    def click(self, element):
        self._check(element)
        if element.click_error:
            raise element.click_error
        element.clicks += 1
        if element.on_click:
            element.on_click(self)

    def fill(self, element, value: str):
        element.value = value

    def scroll_into_view(self, element):
        self._check(element)

    def execute_script(self, script: str, arg=None):
        self.scripts.append(script)
        if isinstance(arg, FakeElement):
            arg.clicks += 1
            if arg.on_click:
                arg.on_click(self)

    # tabs
    def current_handle(self):
        return self.tab

    def open_tab(self, url: str):
        tab = FakeTab(FakeDocument("about:blank"))
        self.tabs.append(tab)
        self.tab = tab
        self.opened.append(url)
        tab.doc = self._load(url)
        return tab

    def close_tab(self):
        self.tab.closed = True

    def switch_to(self, handle):
        if self.fail_switch or handle is None or handle.closed:
            raise PlaywrightError("Target page, context or browser has been closed")
        self.tab = handle

    # cookies
    def cookies(self) -> List[dict]:
        return list(self.cookie_jar)

    def add_cookie(self, cookie: dict):
        self.cookie_jar.append(cookie)

    def clear_cookies(self):
        self.cleared_cookies += 1
        self.cookie_jar.clear()

    # diagnostics & pacing
    def screenshot(self, name: str):
        self.screenshots.append(name)

    def pause(self, seconds: float):
        self.pauses.append(seconds)

    def pause_between(self, min_seconds: float, max_seconds: float):
        self.pauses.append(min_seconds)


class SessionFactory:
    """Hands out FakeSessions sharing one site; the first fail_starts never start"""

    def __init__(self, site: Dict[str, Any], fail_starts: int = 0):
        self.site = site
        self.fail_starts = fail_starts
        self.sessions: List[FakeSession] = []

    def __call__(self, config) -> FakeSession:
        session = FakeSession(self.site)
        if len(self.sessions) < self.fail_starts:
            session.start_error = RuntimeError("chromium failed to launch")
        self.sessions.append(session)
        return session


class FakeStore:
    """Persistence capability keyed by job URL"""

    def __init__(self, keys=(), alive: bool = True):
        self.docs: Dict[str, dict] = {key: {"url": key} for key in keys}
        self.alive = alive
        self.batches: List[List[str]] = []
        self.closed = False

    def scan_keys(self):
        return set(self.docs)

    def upsert_many(self, records):
        records = list(records)
        matched = sum(1 for r in records if r.url in self.docs)
        for record in records:
            self.docs[record.url] = record.to_document()
        self.batches.append([r.url for r in records])
        return {"matched": matched, "modified": matched, "upserted": len(records) - matched, "errors": 0}

    def is_alive(self) -> bool:
        return self.alive

    def close(self):
        self.closed = True


# === Site builders ===

def job_url(slug: str) -> str:
    return f"{BASE_URL}/job-listings-{slug}"


def make_card(slug: str, title: Optional[str] = None, href: Optional[str] = "default",
              company: str = "Acme Analytics", location: Optional[str] = "Bangalore",
              experience: str = "0-2 Yrs", salary: Optional[str] = None,
              skills=("SQL", "Excel"), description: Optional[str] = "Short card summary") -> FakeElement:
    title = title or f"Data Analyst {slug}"
    attrs = {"href": f"/job-listings-{slug}"} if href == "default" else ({"href": href} if href else {})
    children = {
        "a.title": [FakeElement(title, attrs=attrs)],
        "a.comp-name": [FakeElement(company)],
        "span.expwdth": [FakeElement(experience)],
        "ul.tags-gt li": [FakeElement(skill) for skill in skills],
    }
    if location:
        children["span.locWdth"] = [FakeElement(location)]
    if salary:
        children["span.sal-wrap span"] = [FakeElement(salary)]
    if description:
        children["span.job-desc"] = [FakeElement(description)]
    return FakeElement(children=children)


def results_page(url: str, cards: List[FakeElement]) -> FakeDocument:
    container = FakeElement(children={"article.jobTuple": cards})
    return FakeDocument(url, children={"div.styles_job-listing-container__OCfZC": [container]})


def detail_page(url: str, description: Optional[str] = None, skills=(),
                external: bool = False, standard_apply: bool = True) -> FakeDocument:
    children: Dict[str, List[FakeElement]] = {}
    if description:
        children["div.styles_JDC__dang-inner-html__h0K4t"] = [FakeElement(description)]
    if skills:
        children["div.styles_key-skill__GIPn_ a.styles_chip__7YCfG"] = [FakeElement(s) for s in skills]
    if external:
        children["#apply-on-company-site-button"] = [FakeElement("Apply on company site")]
    if standard_apply:
        children["button#apply-button"] = [FakeElement("Apply")]
    return FakeDocument(url, children=children)


def page_url(page: int) -> str:
    return SEARCH_URL if page == 1 else f"{SEARCH_URL}?pageNo={page}"


# === Config ===

BASE_SETTINGS: Dict[str, Any] = {
    "search": {
        "query": "Data Analyst",
        "location": "Bangalore",
        "experience": 0,
        "max_pages": 2,
        "internal_limit": 15,
        "external_limit": 5,
    },
    "credentials": {"email": "", "password": ""},
    "site": {
        "base_url": BASE_URL,
        "login_url": f"{BASE_URL}/nlogin/login",
        "fallback_login_url": "https://login.naukri.com/nLogin/Login.php",
    },
    "browser": {
        "headless": True,
        "use_stealth": False,
        "launch_timeout": 60,
        "page_timeout": 25,
        "navigation_timeout": 45,
        "short_wait": 1,
        "sleep_interval": 0,
        "long_sleep_interval": 0,
        "settle_delay": 0,
        "min_delay": 0,
        "max_delay": 0,
        "page_delay_min": 0,
        "page_delay_max": 0,
        "max_retries": 3,
        "retry_backoff": 0,
    },
    "storage": {"enabled": False},
    "output": {"write_markdown": False},
}


def _set_dotted(settings: dict, key: str, value: Any) -> None:
    node = settings
    parts = key.split(".")
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


@pytest.fixture
def make_config(tmp_path, monkeypatch):
    for names in ENV_OVERRIDES.values():
        for name in names:
            monkeypatch.delenv(name, raising=False)

    def _make(overrides: Optional[Dict[str, Any]] = None, use_env: bool = False) -> ConfigLoader:
        settings = copy.deepcopy(BASE_SETTINGS)
        _set_dotted(settings, "session.cookie_file", str(tmp_path / "cookies.json"))
        _set_dotted(settings, "output.json_file", str(tmp_path / "out" / "jobs_{query}_{location}.json"))
        _set_dotted(settings, "output.markdown_file", str(tmp_path / "out" / "jobs_{query}.md"))
        _set_dotted(settings, "output.summary_file", str(tmp_path / "out" / "summary.json"))
        _set_dotted(settings, "output.screenshot_dir", str(tmp_path / "shots"))
        _set_dotted(settings, "logging.log_file", str(tmp_path / "logs" / "scrape.log"))
        for key, value in (overrides or {}).items():
            _set_dotted(settings, key, value)

        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump(settings), encoding="utf-8")
        return ConfigLoader(str(path), use_env=use_env)

    return _make


@pytest.fixture
def config(make_config):
    return make_config()
