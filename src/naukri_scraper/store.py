"""
Job Store - MongoDB persistence keyed by job URL
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pymongo import ASCENDING, MongoClient, UpdateOne
from pymongo.errors import BulkWriteError, OperationFailure, PyMongoError

from .models import JobRecord

logger = logging.getLogger(__name__)

KEY_FIELD = "url"


def build_upsert(record: JobRecord, now: Optional[datetime] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """(filter, update) pair: refresh every field, stamp first_scraped once"""
    now = now or datetime.now()
    document = record.to_document()
    document["last_updated"] = now
    return (
        {KEY_FIELD: record.url},
        {"$set": document, "$setOnInsert": {"first_scraped": now}},
    )


class MongoJobStore:
    """Unique-keyed job collection. Writes are idempotent upserts."""

    def __init__(self, uri: str, database: str, collection: str, timeout_ms: int = 5000):
        self.uri = uri
        self.database_name = database
        self.collection_name = collection
        self.timeout_ms = timeout_ms
        self.client: Optional[MongoClient] = None
        self.collection = None

    @classmethod
    def from_config(cls, config) -> "MongoJobStore":
        return cls(config.get_mongodb_uri(), config.get_database_name(), config.get_collection_name())

    def connect(self) -> None:
        logger.info("Connecting to MongoDB (%s.%s)...", self.database_name, self.collection_name)
        self.client = MongoClient(self.uri, serverSelectionTimeoutMS=self.timeout_ms)
        # Fail fast when the server is unreachable
        self.client.admin.command("ping")
        self.collection = self.client[self.database_name][self.collection_name]
        logger.info("Connected to MongoDB")
        self.ensure_index()

    def ensure_index(self) -> None:
        try:
            self.collection.create_index([(KEY_FIELD, ASCENDING)], unique=True)
            logger.info("Ensured unique index on '%s'", KEY_FIELD)
        except OperationFailure as exc:
            # Already present with other options, or duplicate keys in legacy data
            logger.warning("Could not create unique index on '%s': %s", KEY_FIELD, exc)

    def scan_keys(self) -> Set[str]:
        """Every stored job URL"""
        keys = {doc[KEY_FIELD] for doc in self.collection.find({}, {KEY_FIELD: 1, "_id": 0}) if doc.get(KEY_FIELD)}
        logger.info("Loaded %s existing job URLs from the database", len(keys))
        return keys

    def upsert_many(self, records: Iterable[JobRecord]) -> Dict[str, int]:
        """Unordered bulk upsert; per-document errors do not stop the batch"""
        records = list(records)
        if not records:
            logger.info("No jobs to save to the database.")
            return {"matched": 0, "modified": 0, "upserted": 0, "errors": 0}

        now = datetime.now()
        operations = [UpdateOne(filter_, update, upsert=True)
                      for filter_, update in (build_upsert(record, now) for record in records)]

        logger.info("Upserting %s jobs into %s.%s...", len(operations), self.database_name, self.collection_name)
        try:
            result = self.collection.bulk_write(operations, ordered=False)
            counts = {
                "matched": result.matched_count,
                "modified": result.modified_count,
                "upserted": result.upserted_count,
                "errors": 0,
            }
        except BulkWriteError as exc:
            details = exc.details or {}
            write_errors = details.get("writeErrors", [])
            for error in write_errors[:5]:
                logger.error("  Write error at index %s: %s", error.get("index"), error.get("errmsg"))
            counts = {
                "matched": details.get("nMatched", 0),
                "modified": details.get("nModified", 0),
                "upserted": details.get("nUpserted", 0),
                "errors": len(write_errors),
            }
            logger.error("Bulk write completed with %s errors", counts["errors"])

        logger.info("Database write: %s matched, %s modified, %s upserted",
                    counts["matched"], counts["modified"], counts["upserted"])
        return counts

    def find_jobs(self, title_regex: str = "", location_regex: str = "", limit: int = 0) -> List[Dict[str, Any]]:
        """Case-insensitive regex filter on title and location"""
        query: Dict[str, Any] = {}
        if title_regex:
            query["title"] = {"$regex": title_regex, "$options": "i"}
        if location_regex:
            query["location"] = {"$regex": location_regex, "$options": "i"}

        cursor = self.collection.find(query, {"_id": 0}).sort("last_updated", -1)
        if limit and limit > 0:
            cursor = cursor.limit(limit)
        return list(cursor)

    def is_alive(self) -> bool:
        if self.client is None:
            return False
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as exc:
            logger.warning("MongoDB ping failed: %s", exc)
            return False

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            logger.info("MongoDB connection closed")
        self.client = None
        self.collection = None
