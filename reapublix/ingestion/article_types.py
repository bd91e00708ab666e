"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class NormalizedArticle:
    """Provider-independent article record produced by a connector.

    `url` is the deduplication key across every source.
    """

    title: str
    summary: str
    url: str
    published_at: datetime
    source_id: str
    category: str
    provider_name: str
    content: Optional[str] = None
    image_url: Optional[str] = None
    author: Optional[str] = None
    # True when the provider gave no publication date and ingestion time was used
    published_at_estimated: bool = False


@dataclass
class StoreResult:
    source_name: str
    received: int = 0
    stored: int = 0
    duplicates: int = 0
    failed: int = 0
    source_missing: bool = False
