"""Like / bookmark / share counters.

These go straight to the primary store as field-level adjustments; unlike
views they are never buffered.
"""

from __future__ import annotations


def record_like(repo, article_id: int) -> None:
    repo.adjust_counter(article_id, "like_count", 1)


def remove_like(repo, article_id: int) -> None:
    repo.adjust_counter(article_id, "like_count", -1)


def record_bookmark(repo, article_id: int) -> None:
    repo.adjust_counter(article_id, "bookmark_count", 1)


def remove_bookmark(repo, article_id: int) -> None:
    repo.adjust_counter(article_id, "bookmark_count", -1)


def record_share(repo, article_id: int) -> None:
    repo.adjust_counter(article_id, "share_count", 1)


def record_view(buffer, article_id) -> None:
    """Views are buffered in Redis and applied by the flush job."""
    buffer.increment(article_id)
