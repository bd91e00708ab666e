"""Popularity score used to rank articles.

score = 0.6 * engagement + 0.4 * recency, where
- recency decays linearly from 100 at publication to 0 after 10 days,
- engagement = 20 * log10(weighted interactions + 1), 0 when there are none.
The log keeps viral articles from swamping the ranking.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

VIEW_WEIGHT = 1
LIKE_WEIGHT = 5
BOOKMARK_WEIGHT = 10
SHARE_WEIGHT = 8

ENGAGEMENT_WEIGHT = 0.6
RECENCY_WEIGHT = 0.4

MAX_AGE_HOURS = 24 * 10
TRENDING_THRESHOLD = 30.0


def recency_score(published_at: datetime, *, now: Optional[datetime] = None) -> float:
    now = now or datetime.now(timezone.utc)
    dt = published_at
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    # future-dated items count as brand new
    age_hours = max(0.0, (now - dt).total_seconds() / 3600.0)
    return max(0.0, 100.0 - (age_hours / MAX_AGE_HOURS) * 100.0)


def engagement_score(view_count: int, like_count: int, bookmark_count: int, share_count: int) -> float:
    raw = (
        view_count * VIEW_WEIGHT
        + like_count * LIKE_WEIGHT
        + bookmark_count * BOOKMARK_WEIGHT
        + share_count * SHARE_WEIGHT
    )
    if raw <= 0:
        return 0.0
    return math.log10(raw + 1) * 20.0


def calculate_popularity_score(
    view_count: int,
    like_count: int,
    bookmark_count: int,
    share_count: int,
    published_at: datetime,
    *,
    now: Optional[datetime] = None,
) -> float:
    engagement = engagement_score(view_count, like_count, bookmark_count, share_count)
    recency = recency_score(published_at, now=now)
    return engagement * ENGAGEMENT_WEIGHT + recency * RECENCY_WEIGHT


def trending_threshold() -> float:
    """Scores above this are treated as trending."""
    return TRENDING_THRESHOLD


def is_trending(score: float) -> bool:
    return score > TRENDING_THRESHOLD


def calculate_batch_scores(rows: Iterable, *, now: Optional[datetime] = None) -> Dict[int, float]:
    """Score rows shaped like AnalyticsRow, keyed by article id."""
    now = now or datetime.now(timezone.utc)
    return {
        r.article_id: calculate_popularity_score(
            r.view_count, r.like_count, r.bookmark_count, r.share_count, r.published_at, now=now
        )
        for r in rows
    }


def recalculate_all(repo, *, now: Optional[datetime] = None) -> int:
    """Recompute and persist the score of every analytics row; returns rows updated."""
    now = now or datetime.now(timezone.utc)
    rows = repo.list_analytics_for_scoring()
    updated = 0
    for row in rows:
        try:
            score = calculate_popularity_score(
                row.view_count,
                row.like_count,
                row.bookmark_count,
                row.share_count,
                row.published_at,
                now=now,
            )
            repo.update_popularity_score(row.id, score)
            updated += 1
        except Exception:
            logger.exception(f"Error updating score for article {row.article_id}")

    logger.info(f"[score] updated={updated} total={len(rows)}")
    return updated
