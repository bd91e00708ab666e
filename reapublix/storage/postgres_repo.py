"""Postgres repository for sources, articles and their analytics rows.

Plain psycopg + SQL. Each call opens its own connection so the ingestion,
flush and scoring jobs never share connection state.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import psycopg
from psycopg import sql

from reapublix.ingestion.article_types import NormalizedArticle


COUNTER_FIELDS = ("view_count", "like_count", "bookmark_count", "share_count")


@dataclass(frozen=True)
class SourceRecord:
    id: int
    display_name: str
    feed_url: str
    website_url: Optional[str] = None
    category: str = "news"
    is_active: bool = True
    last_fetched_at: Optional[datetime] = None


@dataclass(frozen=True)
class AnalyticsRow:
    id: int
    article_id: int
    view_count: int
    like_count: int
    bookmark_count: int
    share_count: int
    published_at: datetime


_SOURCE_COLUMNS = "id, display_name, feed_url, website_url, category, is_active, last_fetched_at"


def _row_to_source(row) -> SourceRecord:
    sid, display_name, feed_url, website_url, category, is_active, last_fetched_at = row
    return SourceRecord(
        id=int(sid),
        display_name=display_name,
        feed_url=feed_url,
        website_url=website_url,
        category=category or "news",
        is_active=bool(is_active),
        last_fetched_at=last_fetched_at,
    )


class PostgresRepo:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self, *, autocommit: bool = False):
        return psycopg.connect(self.pg_dsn, autocommit=autocommit)

    def ping(self) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1")

    # -----------------------------
    # Sources
    # -----------------------------
    def find_source_by_display_name(self, display_name: str) -> Optional[SourceRecord]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"SELECT {_SOURCE_COLUMNS} FROM sources WHERE display_name = %s LIMIT 1",
                    (display_name,),
                )
                row = cur.fetchone()
        return _row_to_source(row) if row else None

    def list_active_rss_sources(self) -> List[SourceRecord]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {_SOURCE_COLUMNS}
                    FROM sources
                    WHERE is_active AND feed_url NOT LIKE %s
                    ORDER BY display_name
                    """,
                    ("api://%",),
                )
                rows = cur.fetchall()
        return [_row_to_source(r) for r in rows]

    def upsert_source(
        self,
        *,
        display_name: str,
        feed_url: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        website_url: Optional[str] = None,
        category: str = "news",
    ) -> int:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO sources (display_name, feed_url, title, description, website_url, category)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (feed_url) DO UPDATE SET
                      display_name = EXCLUDED.display_name,
                      title = EXCLUDED.title,
                      description = EXCLUDED.description,
                      website_url = EXCLUDED.website_url,
                      category = EXCLUDED.category,
                      updated_at = now()
                    RETURNING id
                    """,
                    (display_name, feed_url, title or display_name, description, website_url, category),
                )
                return int(cur.fetchone()[0])

    def touch_source_fetched(self, source_id: int, fetched_at: Optional[datetime] = None) -> None:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE sources SET last_fetched_at = %s, updated_at = now() WHERE id = %s",
                    (fetched_at or datetime.now(timezone.utc), int(source_id)),
                )

    # -----------------------------
    # Articles
    # -----------------------------
    def article_exists(self, url: str) -> bool:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 FROM articles WHERE url = %s LIMIT 1", (url,))
                return cur.fetchone() is not None

    def create_article_with_analytics(self, source: SourceRecord, article: NormalizedArticle) -> Optional[int]:
        """Insert the article and a zeroed analytics row in one transaction.

        Returns the new article id, or None when the URL was inserted by someone
        else since the existence check.
        """
        with self._connect() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO articles (
                          source_id, title, summary, content, url, image_url, author,
                          published_at, published_at_estimated, category, provider_name, provider_url
                        )
                        VALUES (
                          %(source_id)s, %(title)s, %(summary)s, %(content)s, %(url)s, %(image_url)s, %(author)s,
                          %(published_at)s, %(published_at_estimated)s, %(category)s, %(provider_name)s, %(provider_url)s
                        )
                        ON CONFLICT (url) DO NOTHING
                        RETURNING id
                        """,
                        {
                            "source_id": source.id,
                            "title": article.title,
                            "summary": article.summary,
                            "content": article.content,
                            "url": article.url,
                            "image_url": article.image_url,
                            "author": article.author,
                            "published_at": article.published_at,
                            "published_at_estimated": article.published_at_estimated,
                            "category": article.category,
                            "provider_name": article.provider_name,
                            "provider_url": source.website_url,
                        },
                    )
                    row = cur.fetchone()
                    if row is None:
                        return None
                    article_id = int(row[0])
                    cur.execute(
                        """
                        INSERT INTO article_analytics
                          (article_id, view_count, like_count, bookmark_count, share_count, popularity_score)
                        VALUES (%s, 0, 0, 0, 0, 0.0)
                        """,
                        (article_id,),
                    )
        return article_id

    def delete_articles_older_than(self, days: int) -> int:
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM articles WHERE published_at < %s", (cutoff,))
                return int(cur.rowcount or 0)

    # -----------------------------
    # Analytics
    # -----------------------------
    def add_views(self, article_id: int, count: int, viewed_at: Optional[datetime] = None) -> None:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO article_analytics (article_id, view_count, last_viewed_at)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (article_id) DO UPDATE SET
                      view_count = article_analytics.view_count + EXCLUDED.view_count,
                      last_viewed_at = EXCLUDED.last_viewed_at,
                      updated_at = now()
                    """,
                    (int(article_id), int(count), viewed_at or datetime.now(timezone.utc)),
                )

    def adjust_counter(self, article_id: int, field: str, delta: int) -> None:
        """Field-level increment/decrement; creates the analytics row when missing.

        Counts never go below zero.
        """
        if field not in COUNTER_FIELDS:
            raise ValueError(f"unknown analytics counter: {field}")
        col = sql.Identifier(field)
        stmt = sql.SQL(
            """
            INSERT INTO article_analytics (article_id, {col})
            VALUES (%s, GREATEST(%s, 0))
            ON CONFLICT (article_id) DO UPDATE SET
              {col} = GREATEST(article_analytics.{col} + %s, 0),
              updated_at = now()
            """
        ).format(col=col)
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(stmt, (int(article_id), int(delta), int(delta)))

    def list_analytics_for_scoring(self) -> List[AnalyticsRow]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT an.id, an.article_id, an.view_count, an.like_count,
                           an.bookmark_count, an.share_count, a.published_at
                    FROM article_analytics an
                    JOIN articles a ON a.id = an.article_id
                    """
                )
                rows = cur.fetchall()
        return [
            AnalyticsRow(
                id=int(aid),
                article_id=int(article_id),
                view_count=int(views or 0),
                like_count=int(likes or 0),
                bookmark_count=int(bookmarks or 0),
                share_count=int(shares or 0),
                published_at=published_at,
            )
            for (aid, article_id, views, likes, bookmarks, shares, published_at) in rows
        ]

    def update_popularity_score(self, analytics_id: int, score: float) -> None:
        with self._connect(autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE article_analytics SET popularity_score = %s, updated_at = now() WHERE id = %s",
                    (float(score), int(analytics_id)),
                )

    def analytics_summary(self, *, top_n: int = 5) -> Dict[str, Any]:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT COUNT(*), COALESCE(SUM(view_count), 0),
                           COALESCE(SUM(like_count), 0), COALESCE(SUM(bookmark_count), 0)
                    FROM article_analytics
                    """
                )
                total, views, likes, bookmarks = cur.fetchone()
                cur.execute(
                    """
                    SELECT a.title, an.view_count, an.like_count
                    FROM articles a
                    JOIN article_analytics an ON an.article_id = a.id
                    ORDER BY an.popularity_score DESC
                    LIMIT %s
                    """,
                    (int(top_n),),
                )
                top = cur.fetchall()
        return {
            "total_articles": int(total or 0),
            "total_views": int(views or 0),
            "total_likes": int(likes or 0),
            "total_bookmarks": int(bookmarks or 0),
            "top_articles": [
                {"title": title, "view_count": int(v or 0), "like_count": int(l or 0)} for (title, v, l) in top
            ],
        }
