"""Runtime settings for the ingestion and analytics workers.

Values come from the process environment, with a local `.env` file loaded first.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_PG_DSN = "dbname=reapublix user=reapublix password=reapublix host=localhost port=5432"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _env_str(name: str) -> Optional[str]:
    value = (os.environ.get(name) or "").strip()
    return value or None


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    pg_dsn: str = DEFAULT_PG_DSN
    redis_url: str = DEFAULT_REDIS_URL
    guardian_api_key: Optional[str] = None
    nyt_api_key: Optional[str] = None
    newsapi_key: Optional[str] = None
    fetch_timeout_seconds: int = 30
    ingest_interval_minutes: int = 5
    flush_interval_minutes: int = 5
    score_interval_minutes: int = 30
    article_retention_days: int = 30
    ingest_mode: str = "once"


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        pg_dsn=_env_str("PG_DSN") or DEFAULT_PG_DSN,
        redis_url=_env_str("REDIS_URL") or DEFAULT_REDIS_URL,
        guardian_api_key=_env_str("GUARDIAN_API_KEY"),
        nyt_api_key=_env_str("NYT_API_KEY"),
        newsapi_key=_env_str("NEWSAPI_KEY"),
        fetch_timeout_seconds=_env_int("FETCH_TIMEOUT_SECONDS", 30),
        ingest_interval_minutes=_env_int("INGEST_INTERVAL_MINUTES", 5),
        flush_interval_minutes=_env_int("FLUSH_INTERVAL_MINUTES", 5),
        score_interval_minutes=_env_int("SCORE_INTERVAL_MINUTES", 30),
        article_retention_days=_env_int("ARTICLE_RETENTION_DAYS", 30),
        ingest_mode=(_env_str("INGEST_MODE") or "once").lower(),
    )
