#!/usr/bin/env python3
"""Apply buffered views and recompute popularity scores once.

Useful from cron or by hand; `worker.py` runs the same jobs on a schedule.
"""

from __future__ import annotations

import logging
import sys

from reapublix.analytics.flush import flush_view_counts
from reapublix.cache.redis_store import ViewCountBuffer, create_redis_client
from reapublix.config import load_settings
from reapublix.scoring.popularity import recalculate_all
from reapublix.storage.postgres_repo import PostgresRepo
from reapublix.storage.postgres_schema import ensure_postgres_schema

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> int:
    settings = load_settings()
    ensure_postgres_schema(settings.pg_dsn)
    repo = PostgresRepo(settings.pg_dsn)
    buffer = ViewCountBuffer(create_redis_client(settings.redis_url))

    flushed = flush_view_counts(buffer, repo)
    updated = recalculate_all(repo)
    summary = repo.analytics_summary()
    logger.info(
        f"[score] flushed_articles={flushed} updated_scores={updated} "
        f"total_views={summary['total_views']} total_likes={summary['total_likes']}"
    )
    for top in summary["top_articles"]:
        logger.info(f"  top: {top['title']} (views={top['view_count']} likes={top['like_count']})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
