import json

from naukri_scraper.session_manager import SessionManager, SessionMode

from conftest import BASE_URL, FakeDocument, FakeElement, FakeSession

LOGIN_URL = f"{BASE_URL}/nlogin/login"


def logged_in_page(url=f"{BASE_URL}/"):
    return FakeDocument(url, children={"div.nI-gNb-bar1": [FakeElement("Profile")]})


def login_form(after_submit: FakeDocument, click_error=None):
    def submit(session):
        session.tab.doc = after_submit
        session.cookie_jar.append({"name": "nauk_at", "value": "token", "domain": ".naukri.com", "path": "/"})

    return FakeDocument(LOGIN_URL, children={
        "input[placeholder*='Email ID']": [FakeElement()],
        "input[type='password']": [FakeElement()],
        "button[type='submit']": [FakeElement("Login", on_click=submit, click_error=click_error)],
    })


def test_login_without_credentials_never_navigates(config):
    session = FakeSession()
    manager = SessionManager(session, config)

    assert manager.login("", "") is False
    assert manager.login("me@example.com", "") is False
    assert session.navigations == []


def test_establish_anonymous_without_cookies_or_credentials(config):
    session = FakeSession()
    manager = SessionManager(session, config)

    assert manager.establish() == SessionMode.ANONYMOUS
    assert session.navigations == []


def test_restore_session_applies_cookies_and_refreshes(config):
    config.get_cookie_file().write_text(json.dumps([
        {"name": "_ga", "value": "GA1", "domain": ".google.com"},
        {"name": "nauk_at", "value": "abc", "domain": "www.naukri.com", "path": "/", "expires": 1999999999},
        {"name": "empty", "value": ""},
    ]))
    session = FakeSession()

    assert SessionManager(session, config).restore_session() is True

    assert session.navigations == [BASE_URL]
    assert session.cleared_cookies == 1
    assert session.refreshes == 2
    names = [c["name"] for c in session.cookie_jar]
    assert names == ["nauk_at", "_ga"]
    assert session.cookie_jar[0]["domain"] == ".www.naukri.com"
    assert session.cookie_jar[0]["expires"] == 1999999999


def test_restore_session_discards_corrupt_cookie_file(config):
    cookie_file = config.get_cookie_file()
    cookie_file.write_text("{not json")

    assert SessionManager(FakeSession(), config).restore_session() is False
    assert not cookie_file.exists()


def test_is_authenticated_by_url_marker(config):
    session = FakeSession()
    session.tab.doc = FakeDocument("https://www.naukri.com/mnjuser/homepage?src=mynaukri")

    assert SessionManager(session, config).is_authenticated() is True


def test_is_authenticated_by_indicator(config):
    session = FakeSession()
    session.tab.doc = logged_in_page()

    assert SessionManager(session, config).is_authenticated() is True


def test_is_authenticated_fails_closed(config):
    session = FakeSession()
    session.tab.doc = FakeDocument(f"{BASE_URL}/")

    assert SessionManager(session, config).is_authenticated() is False
    assert "login_check_state.png" in session.screenshots


def test_is_authenticated_sees_login_control(config):
    session = FakeSession()
    session.tab.doc = FakeDocument(f"{BASE_URL}/", children={"a#login_Layer": [FakeElement("Login")]})

    assert SessionManager(session, config).is_authenticated() is False
    assert session.screenshots == []


def test_login_success_saves_cookies_via_establish(config):
    session = FakeSession({LOGIN_URL: login_form(logged_in_page())})
    manager = SessionManager(session, config)

    mode = manager.establish("me@example.com", "secret")

    assert mode == SessionMode.AUTHENTICATED
    stored = json.loads(config.get_cookie_file().read_text())
    assert stored[0]["name"] == "nauk_at"


def test_login_stops_on_otp_challenge(config):
    otp = FakeDocument(LOGIN_URL, content="<div>Please Enter OTP sent to your mobile</div>")
    session = FakeSession({LOGIN_URL: login_form(otp)})

    assert SessionManager(session, config).login("me@example.com", "secret") is False
    assert "login_challenge_screenshot.png" in session.screenshots


def test_login_falls_back_to_script_click(config):
    from playwright.sync_api import Error as PlaywrightError

    form = login_form(logged_in_page(), click_error=PlaywrightError("Element is outside of the viewport"))
    session = FakeSession({LOGIN_URL: form})

    assert SessionManager(session, config).login("me@example.com", "secret") is True
    assert session.scripts == ["el => el.click()"]


def test_login_tries_fallback_url_when_form_missing(config):
    fallback = config.get_fallback_login_url()
    session = FakeSession({LOGIN_URL: FakeDocument(LOGIN_URL), fallback: login_form(logged_in_page())})

    assert SessionManager(session, config).login("me@example.com", "secret") is True
    assert session.navigations == [LOGIN_URL, fallback]


def test_establish_discards_cookies_that_do_not_authenticate(config):
    cookie_file = config.get_cookie_file()
    cookie_file.write_text(json.dumps([{"name": "old", "value": "1", "domain": ".naukri.com"}]))
    session = FakeSession()

    assert SessionManager(session, config).establish() == SessionMode.ANONYMOUS
    assert not cookie_file.exists()
    assert session.cookie_jar == []


def test_restore_session_waits_standard_interval_after_homepage(make_config):
    config = make_config({"browser.sleep_interval": 2, "browser.long_sleep_interval": 5})
    config.get_cookie_file().write_text(json.dumps([
        {"name": "nauk_at", "value": "abc", "domain": ".naukri.com"},
    ]))
    session = FakeSession()

    SessionManager(session, config).restore_session()

    assert session.pauses[0] == 2.0
    assert 5.0 in session.pauses
