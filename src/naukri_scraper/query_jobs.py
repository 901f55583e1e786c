#!/usr/bin/env python3

"""
Query Jobs - export stored jobs matching a title/location filter
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from .config_loader import ConfigValidationError, load_config
from .store import MongoJobStore

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Query scraped Naukri jobs in MongoDB")
    parser.add_argument("--config", default="config/settings.yaml", help="Path to config YAML")
    parser.add_argument("--query", default="", help="Regex matched against job title (case-insensitive)")
    parser.add_argument("--location", default="", help="Regex matched against location (case-insensitive)")
    parser.add_argument("--limit", type=int, default=50, help="Maximum number of jobs returned")
    parser.add_argument("--output", help="Output JSON file (default: query_results_<date>.json)")
    parser.add_argument("--mongo-uri", help="Overrides storage.mongodb_uri / MONGODB_URI")
    parser.add_argument("--db-name", help="Overrides storage.database / DB_NAME")
    parser.add_argument("--collection", help="Overrides storage.collection / COLLECTION_NAME")
    return parser.parse_args(argv)


def default_output_path() -> Path:
    return Path(f"query_results_{datetime.now().strftime('%Y-%m-%d')}.json")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        return 1
    except ConfigValidationError as e:
        print(f"❌ {e}")
        return 1

    store = MongoJobStore(
        args.mongo_uri or config.get_mongodb_uri(),
        args.db_name or config.get_database_name(),
        args.collection or config.get_collection_name(),
    )
    output_path = Path(args.output) if args.output else default_output_path()

    try:
        store.connect()
        jobs = store.find_jobs(args.query, args.location, args.limit)
    except PyMongoError as e:
        logger.error(f"Error executing query: {e}")
        print(f"❌ Query failed: {e}")
        return 1
    finally:
        store.close()

    print(f"🔎 Found {len(jobs)} jobs matching criteria")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(jobs, f, indent=2, default=str, ensure_ascii=False)
    print(f"💾 Results saved to {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
