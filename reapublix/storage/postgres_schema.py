"""Postgres schema management for the Reapublix aggregator.

Schema creation is idempotent (CREATE IF NOT EXISTS), so every worker may call
`ensure_postgres_schema` on startup.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg


SCHEMA_STATEMENTS: list[str] = [
    # Sources (API providers use feed_url 'api://<source_id>', RSS feeds their real URL)
    """
    CREATE TABLE IF NOT EXISTS sources (
      id BIGSERIAL PRIMARY KEY,
      display_name TEXT UNIQUE NOT NULL,
      feed_url TEXT UNIQUE NOT NULL,
      title TEXT,
      description TEXT,
      website_url TEXT,
      category TEXT NOT NULL DEFAULT 'news',
      is_active BOOLEAN NOT NULL DEFAULT TRUE,
      last_fetched_at TIMESTAMPTZ,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    # Articles
    """
    CREATE TABLE IF NOT EXISTS articles (
      id BIGSERIAL PRIMARY KEY,
      source_id BIGINT NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
      title VARCHAR(500) NOT NULL,
      summary VARCHAR(1000) NOT NULL DEFAULT '',
      content TEXT,
      url TEXT NOT NULL UNIQUE,
      image_url VARCHAR(2048),
      author VARCHAR(100),
      published_at TIMESTAMPTZ NOT NULL,
      published_at_estimated BOOLEAN NOT NULL DEFAULT FALSE,
      category TEXT NOT NULL DEFAULT 'news',
      provider_name TEXT,
      provider_url TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_articles_category ON articles (category);",
    "CREATE INDEX IF NOT EXISTS idx_articles_source_id ON articles (source_id);",
    # One analytics row per article
    """
    CREATE TABLE IF NOT EXISTS article_analytics (
      id BIGSERIAL PRIMARY KEY,
      article_id BIGINT NOT NULL UNIQUE REFERENCES articles(id) ON DELETE CASCADE,
      view_count INTEGER NOT NULL DEFAULT 0,
      like_count INTEGER NOT NULL DEFAULT 0,
      bookmark_count INTEGER NOT NULL DEFAULT 0,
      share_count INTEGER NOT NULL DEFAULT 0,
      last_viewed_at TIMESTAMPTZ,
      popularity_score REAL NOT NULL DEFAULT 0.0,
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_article_analytics_popularity ON article_analytics (popularity_score DESC);",
    "CREATE INDEX IF NOT EXISTS idx_article_analytics_views ON article_analytics (view_count DESC);",
]


def ensure_postgres_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
