"""Normalization of provider payload fields into `NormalizedArticle`.

Length limits mirror the storage columns; every value is cut here, before the
storage writer checks for duplicates or persists anything.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from reapublix.ingestion.article_types import NormalizedArticle


MAX_TITLE_LENGTH = 500
MAX_SUMMARY_LENGTH = 1000
MAX_IMAGE_URL_LENGTH = 2048
MAX_AUTHOR_LENGTH = 100

UNTITLED = "Untitled"

# NewsAPI and friends cut free-tier content and append "[+1234 chars]"
_TRAILING_CHARS_MARKER = re.compile(r"\[\+?\d+ chars\]$")
_ELLIPSIS_CHARS_MARKER = re.compile(r"\.\.\.\s*\[\d+\s*chars\]$")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def truncate(value: Optional[str], limit: int) -> Optional[str]:
    if value is None:
        return None
    return value[:limit]


def strip_truncation_markers(content: Optional[str]) -> str:
    text = _text(content)
    text = _ELLIPSIS_CHARS_MARKER.sub("...", text).strip()
    text = _TRAILING_CHARS_MARKER.sub("", text).strip()
    return text


def parse_published_at(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 or RFC 822 timestamps; naive values are taken as UTC."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            parsed = datetime.fromisoformat(s.replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = parsedate_to_datetime(s)
            except (TypeError, ValueError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_article(
    *,
    url: str,
    source_id: str,
    provider_name: str,
    category: str,
    title: Any = None,
    summary: Any = None,
    content: Any = None,
    image_url: Any = None,
    author: Any = None,
    published_at: Any = None,
    now: Optional[datetime] = None,
) -> NormalizedArticle:
    published = parse_published_at(published_at)
    estimated = published is None
    if published is None:
        published = now or datetime.now(timezone.utc)

    cleaned_content = strip_truncation_markers(content)
    image = _text(image_url)
    writer = _text(author)

    return NormalizedArticle(
        title=truncate(_text(title), MAX_TITLE_LENGTH) or UNTITLED,
        summary=truncate(_text(summary), MAX_SUMMARY_LENGTH) or "",
        content=cleaned_content or None,
        url=_text(url),
        image_url=truncate(image, MAX_IMAGE_URL_LENGTH) if image else None,
        author=truncate(writer, MAX_AUTHOR_LENGTH) if writer else None,
        published_at=published,
        published_at_estimated=estimated,
        source_id=source_id,
        category=category,
        provider_name=provider_name,
    )
