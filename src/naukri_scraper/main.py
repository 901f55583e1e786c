#!/usr/bin/env python3

"""
Naukri Scraper - Main Entry Point
Searches Naukri, enriches each new job and upserts it into MongoDB
"""

import argparse
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from .config_loader import ConfigValidationError, load_config
from .coordinator import RunCoordinator
from .store import MongoJobStore


def setup_logging(config) -> None:
    """Configure logging for the application"""
    log_file = config.get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, config.get_log_level(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler()
        ]
    )

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized: {log_file}")


def display_config(config) -> None:
    """Display loaded configuration"""
    print("\n" + "="*60)
    print("🔎 NAUKRI SCRAPER - Configuration Loaded")
    print("="*60)

    print(f"\n📋 Query: {config.get_query()}")
    print(f"📍 Location: {config.get_location()}")
    print(f"🎓 Experience: {config.get_experience()} years")
    print(f"📄 Max pages: {config.get_max_pages()}")
    print(f"🎯 Limits: {config.get_internal_limit()} internal / {config.get_external_limit()} external")
    print(f"🔑 Credentials: {'provided' if config.has_credentials() else 'not provided (anonymous mode)'}")

    print(f"\n⚙️  BROWSER SETTINGS:")
    print(f"  Headless mode: {config.is_headless()}")
    print(f"  Stealth: {config.use_stealth()}")
    print(f"  Card delay range: {config.get_min_delay()}s - {config.get_max_delay()}s")

    print(f"\n💾 OUTPUT:")
    print(f"  JSON: {config.get_output_path('json')}")
    if config.is_storage_enabled():
        print(f"  MongoDB: {config.get_database_name()}.{config.get_collection_name()}")
    else:
        print(f"  MongoDB: disabled")
    print("\n" + "="*60 + "\n")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Naukri job scraper")
    parser.add_argument("--config", default="config/settings.yaml", help="Path to config YAML")
    parser.add_argument("--query", help="Search term, e.g. 'Data Analyst'")
    parser.add_argument("--location", help="Search location, e.g. 'Bangalore'")
    parser.add_argument("--experience", help="Minimum years of experience (0 disables the filter)")
    parser.add_argument("--internal-limit", type=int, help="Max Internal jobs accepted this run")
    parser.add_argument("--external-limit", type=int, help="Max External jobs accepted this run")
    parser.add_argument("--max-pages", type=int, help="Result page cap")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--no-store", action="store_true", help="Skip MongoDB; write JSON only")
    parser.add_argument("--markdown", action="store_true", help="Also write a Markdown report")
    return parser.parse_args(argv)


def apply_overrides(config, args: argparse.Namespace) -> None:
    config.override('search.query', args.query)
    config.override('search.location', args.location)
    config.override('search.experience', args.experience)
    config.override('search.internal_limit', args.internal_limit)
    config.override('search.external_limit', args.external_limit)
    config.override('search.max_pages', args.max_pages)
    if args.headed:
        config.override('browser.headless', False)
    if args.no_store:
        config.override('storage.enabled', False)
    if args.markdown:
        config.override('output.write_markdown', True)


def open_store(config) -> Optional[MongoJobStore]:
    """Connected store, or None when storage is disabled"""
    if not config.is_storage_enabled():
        return None
    store = MongoJobStore.from_config(config)
    store.connect()
    return store


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    print("\n🚀 Starting Naukri Scraper...")
    args = parse_args(argv)
    load_dotenv()

    # Load configuration
    try:
        config = load_config(args.config)
        apply_overrides(config, args)
    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        print("Make sure config/settings.yaml exists!")
        return 1
    except ConfigValidationError as e:
        print(f"❌ {e}")
        return 1
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        return 1

    setup_logging(config)
    logger = logging.getLogger(__name__)
    display_config(config)

    try:
        store = open_store(config)
    except PyMongoError as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        print(f"❌ MongoDB unavailable: {e}")
        print("Start MongoDB, fix MONGODB_URI, or rerun with --no-store")
        return 1

    try:
        result = RunCoordinator(config, store=store).run()
    finally:
        if store is not None:
            store.close()

    # Summary
    print("\n" + "="*60)
    if result.ok:
        print("✅ SCRAPE COMPLETE")
    else:
        print(f"⚠️  SCRAPE ABORTED ({result.aborted_reason}) - partial results saved")
    print("="*60)
    print(f"\n📊 New jobs: {len(result.records)} "
          f"({result.internal_count} internal, {result.external_count} external)")
    if result.session_mode:
        print(f"🔑 Session: {result.session_mode.value}")
    print(f"📁 Files:")
    print(f"   JSON: {result.output_path or '-'}")
    if result.summary_path:
        print(f"   Run summary: {result.summary_path}")
    print("\n" + "="*60 + "\n")

    logger.info(f"Scrape finished: {len(result.records)} new jobs, ok={result.ok}")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
