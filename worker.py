#!/usr/bin/env python3
"""Reapublix background worker.

Schedules every periodic job in one process:
- each connector (Guardian, NYT, NewsAPI, RSS): every INGEST_INTERVAL_MINUTES
- view count flush: every FLUSH_INTERVAL_MINUTES
- popularity recalculation: every SCORE_INTERVAL_MINUTES
- retention cleanup: daily at 03:00

`schedule` runs jobs one at a time from this loop, so a job never overlaps a
still-running instance of itself.
"""

from __future__ import annotations

import functools
import logging
import signal
import sys
import time

import psycopg
import redis
import schedule

from reapublix.analytics.flush import flush_view_counts
from reapublix.cache.redis_store import ArticleCache, ViewCountBuffer, create_redis_client
from reapublix.config import Settings, load_settings
from reapublix.ingestion.connectors import CONNECTOR_IDS, run_connector
from reapublix.scoring.popularity import recalculate_all
from reapublix.storage.postgres_repo import PostgresRepo
from reapublix.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def _job(name: str):
    """Keep the scheduler loop alive whatever a single job run does."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            started = time.monotonic()
            try:
                fn(*args, **kwargs)
            except Exception:
                logger.exception(f"Job {name} failed")
            else:
                logger.info(f"Job {name} finished in {time.monotonic() - started:.1f}s")

        return wrapper

    return decorator


def wait_for_services(repo: PostgresRepo, client, *, retries: int = 10, delay: float = 5.0) -> None:
    while retries > 0:
        try:
            repo.ping()
            client.ping()
            logger.info("Database and Redis connected")
            return
        except (psycopg.Error, redis.RedisError) as e:
            retries -= 1
            logger.info(f"Waiting for services... ({retries} retries left): {e}")
            time.sleep(delay)
    raise RuntimeError("Failed to connect to Postgres/Redis")


def schedule_jobs(settings: Settings, repo: PostgresRepo, cache: ArticleCache, buffer: ViewCountBuffer) -> None:
    for source_id in CONNECTOR_IDS:
        job = _job(f"ingest:{source_id}")(run_connector)
        schedule.every(settings.ingest_interval_minutes).minutes.do(
            job, source_id, settings=settings, repo=repo, cache=cache
        )

    schedule.every(settings.flush_interval_minutes).minutes.do(_job("flush_views")(flush_view_counts), buffer, repo)
    schedule.every(settings.score_interval_minutes).minutes.do(_job("popularity")(recalculate_all), repo)

    def cleanup():
        removed = repo.delete_articles_older_than(settings.article_retention_days)
        logger.info(f"Cleaned up {removed} articles older than {settings.article_retention_days} days")

    schedule.every().day.at("03:00").do(_job("cleanup")(cleanup))


def main() -> int:
    settings = load_settings()
    repo = PostgresRepo(settings.pg_dsn)
    client = create_redis_client(settings.redis_url)
    wait_for_services(repo, client)
    ensure_postgres_schema(settings.pg_dsn)

    cache = ArticleCache(client)
    buffer = ViewCountBuffer(client)

    logger.info("Running initial ingestion pass")
    for source_id in CONNECTOR_IDS:
        _job(f"ingest:{source_id}")(run_connector)(source_id, settings=settings, repo=repo, cache=cache)

    schedule_jobs(settings, repo, cache, buffer)
    logger.info(
        f"Jobs scheduled: ingest every {settings.ingest_interval_minutes}m, "
        f"flush every {settings.flush_interval_minutes}m, "
        f"popularity every {settings.score_interval_minutes}m, cleanup daily 03:00"
    )

    def shutdown(signum, _frame):
        logger.info(f"Signal {signum} received. Shutting down worker...")
        raise SystemExit(0)

    signal.signal(signal.SIGTERM, shutdown)
    signal.signal(signal.SIGINT, shutdown)

    while True:
        schedule.run_pending()
        time.sleep(5)


if __name__ == "__main__":
    raise SystemExit(main())
