from datetime import datetime
from types import SimpleNamespace

from pymongo.errors import BulkWriteError

from naukri_scraper.models import ApplicationType, JobRecord, SearchContext
from naukri_scraper.store import MongoJobStore, build_upsert

CONTEXT = SearchContext(query="Data Analyst", location="Bangalore")


def record(slug, kind=ApplicationType.INTERNAL):
    return JobRecord(url=f"https://www.naukri.com/job-listings-{slug}", title=slug,
                     application_type=kind, search_context=CONTEXT)


class FakeCursor:
    def __init__(self, docs):
        self.docs = docs
        self.sorted_by = None
        self.limited = None

    def sort(self, key, direction):
        self.sorted_by = (key, direction)
        return self

    def limit(self, n):
        self.limited = n
        self.docs = self.docs[:n]
        return self

    def __iter__(self):
        return iter(self.docs)


class FakeCollection:
    def __init__(self, docs=(), error=None):
        self.docs = list(docs)
        self.error = error
        self.operations = None
        self.ordered = None
        self.queries = []
        self.cursor = None

    def bulk_write(self, operations, ordered=True):
        self.operations = operations
        self.ordered = ordered
        if self.error:
            raise self.error
        return SimpleNamespace(matched_count=1, modified_count=1, upserted_count=len(operations) - 1)

    def find(self, query, projection=None):
        self.queries.append((query, projection))
        self.cursor = FakeCursor(self.docs)
        return self.cursor


def store_with(collection):
    store = MongoJobStore("mongodb://localhost:27017", "naukri_jobs_db", "jobs")
    store.collection = collection
    return store


def test_build_upsert_refreshes_fields_and_stamps_first_seen_once():
    now = datetime(2024, 5, 1, 12, 0)
    job = record("acme", ApplicationType.EXTERNAL)

    filter_, update = build_upsert(job, now)

    assert filter_ == {"url": job.url}
    assert update["$set"]["url"] == job.url
    assert update["$set"]["application_type"] == "External"
    assert update["$set"]["last_updated"] == now
    assert update["$set"]["search_context"] == {"query": "Data Analyst", "location": "Bangalore", "experience": "0"}
    assert update["$setOnInsert"] == {"first_scraped": now}
    assert "first_scraped" not in update["$set"]


def test_upsert_many_is_unordered_bulk_upsert():
    collection = FakeCollection()

    counts = store_with(collection).upsert_many([record("a"), record("b"), record("c")])

    assert collection.ordered is False
    assert len(collection.operations) == 3
    assert counts == {"matched": 1, "modified": 1, "upserted": 2, "errors": 0}


def test_upsert_many_reports_write_errors_without_raising():
    error = BulkWriteError({
        "writeErrors": [{"index": 1, "code": 11000, "errmsg": "E11000 duplicate key"}],
        "nMatched": 1,
        "nModified": 1,
        "nUpserted": 1,
    })

    counts = store_with(FakeCollection(error=error)).upsert_many([record("a"), record("b"), record("c")])

    assert counts["errors"] == 1
    assert counts["upserted"] == 1


def test_upsert_many_with_nothing_skips_database():
    collection = FakeCollection()

    assert store_with(collection).upsert_many([])["upserted"] == 0
    assert collection.operations is None


def test_scan_keys_collects_urls():
    collection = FakeCollection([{"url": "https://a/1"}, {"url": "https://a/2"}, {}])

    assert store_with(collection).scan_keys() == {"https://a/1", "https://a/2"}


def test_find_jobs_builds_case_insensitive_regex_filter():
    collection = FakeCollection([{"title": str(i)} for i in range(5)])

    jobs = store_with(collection).find_jobs("analyst", "bangalore|pune", limit=2)

    query, projection = collection.queries[0]
    assert query == {
        "title": {"$regex": "analyst", "$options": "i"},
        "location": {"$regex": "bangalore|pune", "$options": "i"},
    }
    assert projection == {"_id": 0}
    assert len(jobs) == 2


def test_find_jobs_without_filters_matches_everything():
    collection = FakeCollection([{"title": "x"}])

    store_with(collection).find_jobs()

    assert collection.queries[0][0] == {}
    assert collection.cursor.limited is None


def test_is_alive_false_when_never_connected():
    assert MongoJobStore("mongodb://localhost:27017", "db", "jobs").is_alive() is False
