"""Storage writer: persists connector output.

Deduplication is by exact URL. Each new article is written together with a
zeroed analytics row; the batch itself is best effort, one item at a time.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Sequence

import psycopg

from reapublix.ingestion.article_types import NormalizedArticle, StoreResult


logger = logging.getLogger(__name__)


def store_articles(repo, cache, source_name: str, articles: Sequence[NormalizedArticle]) -> StoreResult:
    """Store `articles` under the Source whose display name is `source_name`.

    `repo` provides the PostgresRepo operations, `cache` the ArticleCache ones.
    """
    result = StoreResult(source_name=source_name, received=len(articles))

    source = repo.find_source_by_display_name(source_name)
    if source is None:
        result.source_missing = True
        logger.error(f"Source not provisioned: {source_name!r}; dropping {len(articles)} articles (run seed_sources.py)")
        return result

    logger.info(f"Processing {len(articles)} articles for {source_name}")

    for article in articles:
        try:
            if repo.article_exists(article.url):
                result.duplicates += 1
                logger.debug(f"Skipping duplicate {article.url}")
                continue
            article_id = repo.create_article_with_analytics(source, article)
        except (psycopg.Error, ValueError) as e:
            result.failed += 1
            logger.error(f"Failed to save {article.url}: {e}")
            continue
        if article_id is None:
            result.duplicates += 1
            logger.debug(f"Skipping duplicate {article.url}")
        else:
            result.stored += 1

    if result.stored > 0:
        cache.invalidate_listings()
        try:
            repo.touch_source_fetched(source.id, datetime.now(timezone.utc))
        except psycopg.Error as e:
            logger.error(f"Could not update last fetched time for {source_name}: {e}")

    logger.info(
        f"[ingest] {source_name}: stored={result.stored} duplicates={result.duplicates} failed={result.failed}"
    )
    return result
