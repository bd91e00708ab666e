"""Redis-backed response cache and view-count buffer.

Both wrappers take an already constructed client so tests can pass an in-memory
stand-in. Clients are expected to be created with `decode_responses=True`.
Redis failures are logged and swallowed here: a lost cache entry or view count
is an acceptable degradation.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import redis


logger = logging.getLogger(__name__)

ARTICLE_CACHE_PATTERN = "articles:*"
PENDING_VIEWS_PREFIX = "views:pending:"
DEFAULT_TTL_SECONDS = 120


def create_redis_client(redis_url: str) -> "redis.Redis":
    return redis.Redis.from_url(redis_url, decode_responses=True, socket_timeout=5)


class ArticleCache:
    def __init__(self, client, *, pattern: str = ARTICLE_CACHE_PATTERN):
        self.client = client
        self.pattern = pattern

    def get(self, key: str) -> Optional[Any]:
        try:
            data = self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache get failed for {key}: {e}")
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError:
            return None

    def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        try:
            self.client.setex(key, ttl_seconds, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.error(f"Cache set failed for {key}: {e}")

    def delete_pattern(self, pattern: str) -> int:
        try:
            keys = list(self.client.scan_iter(match=pattern))
            if not keys:
                return 0
            return int(self.client.delete(*keys) or 0)
        except redis.RedisError as e:
            logger.error(f"Cache delete failed for {pattern}: {e}")
            return 0

    def invalidate_listings(self) -> int:
        """Drop every cached article listing (all filter/sort/page variants)."""
        return self.delete_pattern(self.pattern)


class ViewCountBuffer:
    """Per-article pending view counters kept between flush cycles."""

    def __init__(self, client, *, prefix: str = PENDING_VIEWS_PREFIX):
        self.client = client
        self.prefix = prefix

    def _key(self, article_id) -> str:
        return f"{self.prefix}{article_id}"

    def increment(self, article_id) -> None:
        try:
            self.client.incr(self._key(article_id))
        except redis.RedisError as e:
            logger.warning(f"Dropped view for article {article_id}: {e}")

    def drain_all(self) -> Dict[str, int]:
        """Read-and-remove every pending counter.

        GETDEL is atomic per key, so an increment issued after it recreates the
        key from zero and is returned by the next drain instead of this one.
        """
        counts: Dict[str, int] = {}
        try:
            keys = list(self.client.scan_iter(match=f"{self.prefix}*"))
            for key in keys:
                raw = self.client.getdel(key)
                try:
                    count = int(raw or 0)
                except (TypeError, ValueError):
                    logger.warning(f"Discarding non-numeric view counter {key}={raw!r}")
                    continue
                if count > 0:
                    article_id = key[len(self.prefix):]
                    counts[article_id] = counts.get(article_id, 0) + count
        except redis.RedisError as e:
            logger.error(f"View counter drain interrupted after {len(counts)} keys: {e}")
        return counts
