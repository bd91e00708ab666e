#!/usr/bin/env python3
"""Ingestion worker.

Runs one ingestion pass (or scheduled) over every connector:
- The Guardian, The New York Times, NewsAPI (API keys from env)
- every active RSS source in Postgres

New articles land in Postgres with zeroed analytics; article listing caches are
invalidated whenever a batch stores something.
"""

from __future__ import annotations

import logging
import sys
import time

import schedule

from reapublix.cache.redis_store import ArticleCache, create_redis_client
from reapublix.config import Settings, load_settings
from reapublix.ingestion.connectors import run_ingestion_pass
from reapublix.storage.postgres_repo import PostgresRepo
from reapublix.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def run_once(settings: Settings) -> None:
    ensure_postgres_schema(settings.pg_dsn)
    repo = PostgresRepo(settings.pg_dsn)
    cache = ArticleCache(create_redis_client(settings.redis_url))
    run_ingestion_pass(settings=settings, repo=repo, cache=cache)


def run_scheduled(settings: Settings) -> None:
    run_once(settings)
    schedule.every(settings.ingest_interval_minutes).minutes.do(run_once, settings)
    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    settings = load_settings()
    if settings.ingest_mode in ("scheduled", "daemon"):
        run_scheduled(settings)
    else:
        run_once(settings)
