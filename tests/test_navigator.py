import pytest

from naukri_scraper.models import ApplicationType, JobRecord, SearchContext
from naukri_scraper.navigator import SearchNavigator, build_search_url, normalize_term
from naukri_scraper.run_state import RunState

from conftest import FakeSession

BASE = "https://www.naukri.com"


@pytest.mark.parametrize("term,expected", [
    ("Data Analyst", "data-analyst"),
    ("  Machine   Learning Engineer ", "machine-learning-engineer"),
    ("Bangalore", "bangalore"),
])
def test_normalize_term(term, expected):
    assert normalize_term(term) == expected


@pytest.mark.parametrize("experience,page,expected", [
    ("0", 1, f"{BASE}/data-analyst-jobs-in-bangalore"),
    ("0", 3, f"{BASE}/data-analyst-jobs-in-bangalore?pageNo=3"),
    ("2", 1, f"{BASE}/data-analyst-jobs-in-bangalore?experience=2"),
    ("2", 2, f"{BASE}/data-analyst-jobs-in-bangalore?experience=2&pageNo=2"),
])
def test_build_search_url(experience, page, expected):
    context = SearchContext(query="Data Analyst", location="Bangalore", experience=experience)
    assert build_search_url(BASE + "/", context, page) == expected


def test_should_fetch_respects_page_cap(make_config):
    config = make_config({"search.max_pages": 3})
    navigator = SearchNavigator(FakeSession(), config, SearchContext(query="x", location="y"))
    state = RunState(internal_limit=5, external_limit=5)

    assert [p for p in range(1, 6) if navigator.should_fetch(p, state)] == [1, 2, 3]


def test_should_fetch_stops_when_both_limits_reached(config):
    navigator = SearchNavigator(FakeSession(), config, SearchContext(query="x", location="y"))
    context = SearchContext(query="x", location="y")
    state = RunState(internal_limit=1, external_limit=1)

    state.accept(JobRecord(url="https://a/1", search_context=context))
    assert navigator.should_fetch(1, state) is True

    state.accept(JobRecord(url="https://a/2", application_type=ApplicationType.EXTERNAL, search_context=context))
    assert navigator.should_fetch(1, state) is False


def test_load_navigates_to_page_url(config):
    session = FakeSession()
    navigator = SearchNavigator(session, config, SearchContext(query="Data Analyst", location="Bangalore"))

    url = navigator.load(2)

    assert url == f"{BASE}/data-analyst-jobs-in-bangalore?pageNo=2"
    assert session.navigations == [url]
