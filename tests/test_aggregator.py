import unittest
from datetime import datetime, timezone

import psycopg

from fakes import InMemoryRepo, RecordingCache

from reapublix.ingestion.aggregator import store_articles
from reapublix.ingestion.normalize import normalize_article


def _articles(*urls):
    return [
        normalize_article(
            title=f"Story {u}",
            url=u,
            source_id="guardian",
            provider_name="The Guardian",
            category="news",
            published_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        )
        for u in urls
    ]


class TestStoreArticles(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryRepo()
        self.cache = RecordingCache()
        self.source = self.repo.add_source("The Guardian")

    def test_overlapping_batches_are_idempotent_by_url(self):
        first = store_articles(self.repo, self.cache, "The Guardian", _articles("a", "b"))
        second = store_articles(self.repo, self.cache, "The Guardian", _articles("b", "c"))

        self.assertEqual(set(self.repo.articles), {"a", "b", "c"})
        self.assertEqual(len(self.repo.articles), 3)
        self.assertEqual((first.stored, first.duplicates), (2, 0))
        self.assertEqual((second.stored, second.duplicates), (1, 1))

    def test_every_article_gets_zeroed_analytics(self):
        store_articles(self.repo, self.cache, "The Guardian", _articles("a"))
        article_id = self.repo.articles["a"]["id"]
        row = self.repo.analytics[article_id]
        self.assertEqual(
            (row["view_count"], row["like_count"], row["bookmark_count"], row["share_count"]), (0, 0, 0, 0)
        )
        self.assertEqual(self.repo.articles["a"]["source_id"], self.source.id)

    def test_missing_source_drops_whole_batch(self):
        result = store_articles(self.repo, self.cache, "Unknown Wire", _articles("a", "b"))
        self.assertTrue(result.source_missing)
        self.assertEqual(self.repo.articles, {})
        self.assertEqual(self.cache.invalidations, 0)

    def test_item_failure_does_not_abort_batch(self):
        self.repo.fail_urls.add("b")
        result = store_articles(self.repo, self.cache, "The Guardian", _articles("a", "b", "c"))
        self.assertEqual((result.stored, result.failed), (2, 1))
        self.assertEqual(set(self.repo.articles), {"a", "c"})

    def test_timestamp_and_cache_only_touched_when_something_new(self):
        store_articles(self.repo, self.cache, "The Guardian", _articles("a"))
        self.assertEqual(self.repo.touched, [self.source.id])
        self.assertEqual(self.cache.invalidations, 1)

        store_articles(self.repo, self.cache, "The Guardian", _articles("a"))
        self.assertEqual(self.repo.touched, [self.source.id])
        self.assertEqual(self.cache.invalidations, 1)

    def test_cache_cleared_even_if_timestamp_update_fails(self):
        def broken_touch(source_id, fetched_at=None):
            raise psycopg.OperationalError("connection lost")

        self.repo.touch_source_fetched = broken_touch
        result = store_articles(self.repo, self.cache, "The Guardian", _articles("u"))

        self.assertEqual(result.stored, 1)
        self.assertEqual(set(self.repo.articles), {"u"})
        self.assertEqual(self.cache.invalidations, 1)

    def test_item_failures_logged_as_errors(self):
        self.repo.fail_urls.add("b")
        with self.assertLogs("reapublix.ingestion.aggregator", level="ERROR") as logs:
            store_articles(self.repo, self.cache, "The Guardian", _articles("a", "b"))
        self.assertTrue(any("Failed to save b" in line for line in logs.output))

    def test_duplicates_logged_at_debug(self):
        store_articles(self.repo, self.cache, "The Guardian", _articles("a"))
        with self.assertLogs("reapublix.ingestion.aggregator", level="DEBUG") as logs:
            store_articles(self.repo, self.cache, "The Guardian", _articles("a"))
        self.assertIn("DEBUG:reapublix.ingestion.aggregator:Skipping duplicate a", logs.output)

    def test_url_match_is_exact(self):
        store_articles(self.repo, self.cache, "The Guardian", _articles("https://x.com/a"))
        result = store_articles(self.repo, self.cache, "The Guardian", _articles("https://x.com/a?utm_source=rss"))
        self.assertEqual(result.stored, 1)


if __name__ == "__main__":
    unittest.main()
