"""Flush buffered view counts from Redis into article analytics."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def flush_view_counts(buffer, repo) -> int:
    """Drain the view buffer and add each count to its article's analytics row.

    A failed write loses that article's drained count for this cycle; the rest
    of the batch is still applied. Returns the number of articles updated.
    """
    counts = buffer.drain_all()
    if not counts:
        logger.info("No view counts to flush")
        return 0

    now = datetime.now(timezone.utc)
    flushed = 0
    for article_id, count in counts.items():
        try:
            repo.add_views(int(article_id), count, now)
            flushed += 1
        except Exception:
            logger.exception(f"Error updating view count for {article_id} (lost {count} views)")

    logger.info(f"[flush] flushed={flushed} drained={len(counts)}")
    return flushed
