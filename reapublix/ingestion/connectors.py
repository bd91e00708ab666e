"""Source connectors for external news providers.

Each connector performs one bounded HTTP fetch and maps the provider payload
into `NormalizedArticle` records (normalization + classification). Connectors
hold no shared state; `run_connector` adds the error policy and hands the
result to the storage writer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import feedparser
import psycopg
import requests

from reapublix.config import Settings
from reapublix.ingestion.aggregator import store_articles
from reapublix.ingestion.article_types import NormalizedArticle, StoreResult
from reapublix.ingestion.categories import classify
from reapublix.ingestion.normalize import normalize_article


logger = logging.getLogger(__name__)

USER_AGENT = "Reapublix News Aggregator/1.0"
DEFAULT_PAGE_SIZE = 50
DEFAULT_TIMEOUT = 30


class ConnectorError(Exception):
    """Provider answered with an error status or an unexpected payload."""


class RateLimited(ConnectorError):
    """HTTP 429 from the provider."""


def _get_json(url: str, *, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None, timeout: int) -> Any:
    hdrs = {"User-Agent": USER_AGENT}
    hdrs.update(headers or {})
    resp = requests.get(url, params=params, headers=hdrs, timeout=timeout)
    if resp.status_code == 429:
        raise RateLimited(f"{url} rate limited")
    if not resp.ok:
        raise ConnectorError(f"{url} returned status {resp.status_code}")
    return resp.json()


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


class BaseConnector:
    source_id: str
    display_name: str

    def fetch(self) -> List[NormalizedArticle]:
        raise NotImplementedError


@dataclass(frozen=True)
class GuardianConnector(BaseConnector):
    api_key: str
    endpoint: str = "https://content.guardianapis.com/search"
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: int = DEFAULT_TIMEOUT

    source_id: str = "guardian"
    display_name: str = "The Guardian"

    def fetch(self) -> List[NormalizedArticle]:
        params = {
            "api-key": self.api_key,
            "show-fields": "headline,trailText,body,thumbnail,byline",
            "page-size": self.page_size,
            "order-by": "newest",
        }
        data = _as_dict(_get_json(self.endpoint, params=params, timeout=self.timeout))
        payload = _as_dict(data.get("response"))
        if payload.get("status") != "ok":
            raise ConnectorError(f"Guardian response status {payload.get('status')!r}")
        results = payload.get("results")
        if not isinstance(results, list):
            raise ConnectorError("Guardian response has no results list")

        out: List[NormalizedArticle] = []
        for item in results:
            if not isinstance(item, dict) or not item.get("webUrl"):
                continue
            fields = _as_dict(item.get("fields"))
            title = fields.get("headline") or item.get("webTitle")
            summary = fields.get("trailText") or ""
            out.append(
                normalize_article(
                    title=title,
                    summary=summary,
                    content=fields.get("body"),
                    url=item["webUrl"],
                    image_url=fields.get("thumbnail"),
                    author=fields.get("byline"),
                    published_at=item.get("webPublicationDate"),
                    source_id=self.source_id,
                    category=classify(item.get("sectionName") or "", title or "", summary),
                    provider_name=self.display_name,
                )
            )
        return out


@dataclass(frozen=True)
class NYTimesConnector(BaseConnector):
    """Top stories; the API only returns abstracts, which double as content."""

    api_key: str
    endpoint: str = "https://api.nytimes.com/svc/topstories/v2/home.json"
    timeout: int = DEFAULT_TIMEOUT

    source_id: str = "nytimes"
    display_name: str = "The New York Times"

    @staticmethod
    def _best_image(multimedia: Any) -> Optional[str]:
        if not isinstance(multimedia, list) or not multimedia:
            return None
        media = [m for m in multimedia if isinstance(m, dict)]
        for m in media:
            if m.get("format") == "Super Jumbo":
                return m.get("url")
        return media[0].get("url") if media else None

    def fetch(self) -> List[NormalizedArticle]:
        data = _as_dict(_get_json(self.endpoint, params={"api-key": self.api_key}, timeout=self.timeout))
        results = data.get("results")
        if data.get("status") != "OK" or not isinstance(results, list):
            raise ConnectorError(f"NYT response status {data.get('status')!r}")

        out: List[NormalizedArticle] = []
        for item in results:
            if not isinstance(item, dict) or not item.get("title") or not item.get("url"):
                continue
            abstract = item.get("abstract") or ""
            byline = str(item.get("byline") or "")
            if byline.startswith("By "):
                byline = byline[3:]
            out.append(
                normalize_article(
                    title=item["title"],
                    summary=abstract,
                    content=abstract,
                    url=item["url"],
                    image_url=self._best_image(item.get("multimedia")),
                    author=byline or self.display_name,
                    published_at=item.get("published_date"),
                    source_id=self.source_id,
                    category=classify(item.get("section") or "", item["title"], abstract),
                    provider_name=self.display_name,
                )
            )
        return out


@dataclass(frozen=True)
class NewsAPIConnector(BaseConnector):
    api_key: str
    endpoint: str = "https://newsapi.org/v2/top-headlines"
    country: str = "us"
    page_size: int = DEFAULT_PAGE_SIZE
    timeout: int = DEFAULT_TIMEOUT

    source_id: str = "newsapi"
    display_name: str = "NewsAPI"

    def fetch(self) -> List[NormalizedArticle]:
        params = {"country": self.country, "pageSize": self.page_size}
        data = _as_dict(
            _get_json(self.endpoint, params=params, headers={"X-Api-Key": self.api_key}, timeout=self.timeout)
        )
        articles = data.get("articles")
        if data.get("status") != "ok" or not isinstance(articles, list):
            raise ConnectorError(f"NewsAPI response status {data.get('status')!r}")

        out: List[NormalizedArticle] = []
        for a in articles:
            if not isinstance(a, dict):
                continue
            url = a.get("url") or ""
            title = a.get("title") or ""
            # NewsAPI keeps placeholders for articles withdrawn by the publisher
            if not url or title == "[Removed]":
                continue
            description = a.get("description") or ""
            outlet = _as_dict(a.get("source")).get("name") or self.display_name
            out.append(
                normalize_article(
                    title=title,
                    summary=description,
                    content=a.get("content"),
                    url=url,
                    image_url=a.get("urlToImage"),
                    author=a.get("author"),
                    published_at=a.get("publishedAt"),
                    source_id=self.source_id,
                    category=classify("", title, description),
                    provider_name=outlet,
                )
            )
        return out


@dataclass(frozen=True)
class RSSConnector(BaseConnector):
    """One RSS/Atom feed, stored under its own Source display name."""

    feed_url: str
    display_name: str
    category_hint: str = ""
    timeout: int = DEFAULT_TIMEOUT
    limit: int = DEFAULT_PAGE_SIZE

    source_id: str = "rss"

    @staticmethod
    def _image(entry: Any) -> Optional[str]:
        for enclosure in entry.get("enclosures") or []:
            href = enclosure.get("href") or enclosure.get("url")
            if href:
                return href
        for field in ("media_content", "media_thumbnail"):
            for media in entry.get(field) or []:
                if media.get("url"):
                    return media["url"]
        return None

    def fetch(self) -> List[NormalizedArticle]:
        resp = requests.get(self.feed_url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        if resp.status_code == 429:
            raise RateLimited(f"{self.feed_url} rate limited")
        if not resp.ok:
            raise ConnectorError(f"{self.feed_url} returned status {resp.status_code}")
        parsed = feedparser.parse(resp.content)
        entries = parsed.entries or []
        if not entries and parsed.get("bozo"):
            raise ConnectorError(f"{self.feed_url} is not a parseable feed: {parsed.get('bozo_exception')}")

        out: List[NormalizedArticle] = []
        for entry in entries[: self.limit]:
            link = entry.get("link")
            if not link:
                continue
            title = entry.get("title") or ""
            summary = entry.get("summary") or ""
            tags = " ".join(t.get("term") or "" for t in entry.get("tags") or [])
            content_blocks = entry.get("content") or []
            content = content_blocks[0].get("value") if content_blocks else None
            out.append(
                normalize_article(
                    title=title,
                    summary=summary,
                    content=content,
                    url=link,
                    image_url=self._image(entry),
                    author=entry.get("author"),
                    published_at=entry.get("published") or entry.get("updated"),
                    source_id=self.source_id,
                    category=classify(f"{tags} {self.category_hint}".strip(), title, summary),
                    provider_name=self.display_name,
                )
            )
        return out


API_KEY_ENV = {"guardian": "GUARDIAN_API_KEY", "nytimes": "NYT_API_KEY", "newsapi": "NEWSAPI_KEY"}


def build_api_connector(source_id: str, settings: Settings) -> Optional[BaseConnector]:
    """Connector for an API provider, or None when its key is not configured."""
    timeout = settings.fetch_timeout_seconds
    if source_id == "guardian":
        return GuardianConnector(api_key=settings.guardian_api_key, timeout=timeout) if settings.guardian_api_key else None
    if source_id == "nytimes":
        return NYTimesConnector(api_key=settings.nyt_api_key, timeout=timeout) if settings.nyt_api_key else None
    if source_id == "newsapi":
        return NewsAPIConnector(api_key=settings.newsapi_key, timeout=timeout) if settings.newsapi_key else None
    raise ValueError(f"unknown connector: {source_id}")


CONNECTOR_IDS = ("guardian", "nytimes", "newsapi", "rss")


def fetch_and_store(connector: BaseConnector, *, repo, cache) -> Optional[StoreResult]:
    """Fetch one connector and store its articles; never raises."""
    try:
        articles = connector.fetch()
    except RateLimited as e:
        logger.warning(f"{connector.display_name}: rate limited, skipping this cycle ({e})")
        return None
    except (requests.RequestException, ConnectorError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Error fetching {connector.display_name}: {e}")
        return None

    try:
        return store_articles(repo, cache, connector.display_name, articles)
    except psycopg.Error as e:
        logger.error(f"Storage unavailable while saving {connector.display_name}: {e}")
        return None


def run_rss_feeds(*, settings: Settings, repo, cache) -> List[StoreResult]:
    try:
        sources = repo.list_active_rss_sources()
    except psycopg.Error as e:
        logger.error(f"Could not list RSS sources: {e}")
        return []

    logger.info(f"Fetching {len(sources)} RSS feeds")
    results: List[StoreResult] = []
    for source in sources:
        connector = RSSConnector(
            feed_url=source.feed_url,
            display_name=source.display_name,
            category_hint=source.category,
            timeout=settings.fetch_timeout_seconds,
        )
        result = fetch_and_store(connector, repo=repo, cache=cache)
        if result is not None:
            results.append(result)
    return results


def run_connector(source_id: str, *, settings: Settings, repo, cache) -> List[StoreResult]:
    """Run one provider end to end. A missing API key is a logged no-op."""
    if source_id == "rss":
        return run_rss_feeds(settings=settings, repo=repo, cache=cache)

    connector = build_api_connector(source_id, settings)
    if connector is None:
        logger.warning(f"{API_KEY_ENV[source_id]} not set. Skipping {source_id}.")
        return []

    logger.info(f"Fetching {connector.display_name}")
    result = fetch_and_store(connector, repo=repo, cache=cache)
    return [result] if result is not None else []


def run_ingestion_pass(*, settings: Settings, repo, cache, source_ids=CONNECTOR_IDS) -> List[StoreResult]:
    results: List[StoreResult] = []
    for source_id in source_ids:
        results.extend(run_connector(source_id, settings=settings, repo=repo, cache=cache))
    stored = sum(r.stored for r in results)
    logger.info(f"[ingest] pass complete: new_articles={stored} batches={len(results)}")
    return results
