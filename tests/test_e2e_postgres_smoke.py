import os
import unittest
import uuid
from datetime import datetime, timezone

from fakes import RecordingCache

PG_DSN = os.environ.get("PG_DSN")


@unittest.skipUnless(PG_DSN, "PG_DSN not set; Postgres smoke test skipped")
class TestE2EPostgresSmoke(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        from reapublix.storage.postgres_repo import PostgresRepo
        from reapublix.storage.postgres_schema import ensure_postgres_schema

        ensure_postgres_schema(PG_DSN)
        cls.repo = PostgresRepo(PG_DSN)
        cls.run_id = uuid.uuid4().hex[:8]
        cls.source_name = f"E2E Wire {cls.run_id}"
        cls.repo.upsert_source(display_name=cls.source_name, feed_url=f"api://e2e-{cls.run_id}")

    def _article(self, suffix):
        from reapublix.ingestion.normalize import normalize_article

        return normalize_article(
            title=f"E2E smoke {suffix}",
            url=f"https://example.com/e2e/{self.run_id}/{suffix}",
            source_id="e2e",
            provider_name=self.source_name,
            category="news",
            published_at=datetime.now(timezone.utc),
        )

    def test_store_flush_and_score(self):
        from reapublix.ingestion.aggregator import store_articles
        from reapublix.scoring.popularity import recalculate_all

        cache = RecordingCache()
        first = store_articles(self.repo, cache, self.source_name, [self._article("a"), self._article("b")])
        second = store_articles(self.repo, cache, self.source_name, [self._article("b"), self._article("c")])
        self.assertEqual(first.stored, 2)
        self.assertEqual((second.stored, second.duplicates), (1, 1))

        source = self.repo.find_source_by_display_name(self.source_name)
        self.assertIsNotNone(source.last_fetched_at)

        rows = {r.article_id: r for r in self.repo.list_analytics_for_scoring()}
        article_id = max(rows)
        self.repo.add_views(article_id, 4)
        self.repo.adjust_counter(article_id, "like_count", 1)
        self.repo.adjust_counter(article_id, "like_count", -5)
        self.assertGreaterEqual(recalculate_all(self.repo), 3)

        row = {r.article_id: r for r in self.repo.list_analytics_for_scoring()}[article_id]
        self.assertEqual(row.view_count, 4)
        self.assertEqual(row.like_count, 0)


if __name__ == "__main__":
    unittest.main()
