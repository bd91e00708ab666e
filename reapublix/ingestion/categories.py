"""Category classification for ingested articles.

Two passes, in strict order:
1. the provider's own section/tag against `CATEGORY_MAPPING` (substring match),
2. keyword search over hint + title + summary using `KEYWORD_MAPPING`.

Both tables are ordered: the first match wins, so entries must not be re-sorted.
Matching is plain substring containment. Short keywords ("app", "fed", "cup")
also hit inside longer words; " ai " carries its own spaces for that reason.
"""

from __future__ import annotations

from typing import List, Optional, Tuple


DEFAULT_CATEGORY = "news"

CATEGORIES = ("news", "technology", "business", "sports", "entertainment", "health", "science")

CATEGORY_MAPPING: List[Tuple[str, str]] = [
    ("general", "news"),
    ("world", "news"),
    ("nation", "news"),
    ("technology", "technology"),
    ("tech", "technology"),
    ("business", "business"),
    ("finance", "business"),
    ("sports", "sports"),
    ("sport", "sports"),
    ("entertainment", "entertainment"),
    ("arts", "entertainment"),
    ("lifestyle", "entertainment"),
    ("health", "health"),
    ("science", "science"),
    ("opinion", "news"),
    ("politics", "news"),
]

KEYWORD_MAPPING: List[Tuple[str, List[str]]] = [
    (
        "technology",
        [
            "crypto", "bitcoin", " ai ", "artificial intelligence", "chatgpt", "openai", "apple",
            "google", "microsoft", "meta", "tech", "software", "hardware", "app", "iphone",
            "android", "samsung", "nvidia", "musk", "twitter", "x.com",
        ],
    ),
    (
        "business",
        [
            "stock", "market", "economy", "inflation", "bank", "fed", "treasury", "recession",
            "currency", "trade", "ceo", "startup", "ipo", "business", "finance", "revenue", "profit",
        ],
    ),
    (
        "sports",
        [
            "football", "soccer", "nba", "nfl", "mlb", "nhl", "messi", "ronaldo", "lakers",
            "warriors", "team", "coach", "score", "championship", "tournament", "cup", "olympic",
            "medal", "race", "f1",
        ],
    ),
    (
        "entertainment",
        [
            "movie", "film", "cinema", "actor", "actress", "hollywood", "netflix", "disney",
            "marvel", "star wars", "concert", "song", "music", "album", "celebrity", "oscars",
            "grammy", "award",
        ],
    ),
    (
        "health",
        [
            "cancer", "virus", "covid", "vaccine", "health", "diet", "nutrition", "doctor",
            "hospital", "disease", "mental health", "workout", "fitness",
        ],
    ),
    (
        "science",
        [
            "nasa", "space", "moon", "mars", "rocket", "planet", "climate", "global warming",
            "fossil", "energy", "solar", "research", "scientist", "physics", "biology", "chemistry",
        ],
    ),
]


def classify(provider_hint: Optional[str], title: Optional[str] = "", summary: Optional[str] = "") -> str:
    hint = (provider_hint or "").lower()
    for key, category in CATEGORY_MAPPING:
        if key in hint:
            return category

    combined = f"{hint} {title or ''} {summary or ''}".lower()
    for category, keywords in KEYWORD_MAPPING:
        if any(k in combined for k in keywords):
            return category

    return DEFAULT_CATEGORY
