#!/usr/bin/env python3
"""Provision the API system sources.

Articles are only ingested for sources that already exist, so run this once
per database (it is idempotent).
"""

from __future__ import annotations

import logging
import sys

import psycopg

from reapublix.config import load_settings
from reapublix.storage.postgres_repo import PostgresRepo
from reapublix.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEFAULT_SOURCES = [
    {
        "feed_url": "api://guardian",
        "display_name": "The Guardian",
        "description": "Latest world news from The Guardian API",
        "website_url": "https://www.theguardian.com",
    },
    {
        "feed_url": "api://nytimes",
        "display_name": "The New York Times",
        "description": "Top stories from The New York Times",
        "website_url": "https://www.nytimes.com",
    },
    {
        "feed_url": "api://newsapi",
        "display_name": "NewsAPI",
        "description": "Top headlines aggregated by NewsAPI",
        "website_url": "https://newsapi.org",
    },
]


def main() -> int:
    settings = load_settings()
    ensure_postgres_schema(settings.pg_dsn)
    repo = PostgresRepo(settings.pg_dsn)

    failed = 0
    for src in DEFAULT_SOURCES:
        try:
            source_id = repo.upsert_source(category="news", **src)
            logger.info(f"  ok {src['display_name']} (id={source_id})")
        except psycopg.Error as e:
            failed += 1
            logger.error(f"  failed {src['display_name']}: {e}")

    logger.info(f"Seeding complete: {len(DEFAULT_SOURCES) - failed}/{len(DEFAULT_SOURCES)} sources configured")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
