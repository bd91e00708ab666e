import unittest

from fakes import FakeRedis, InMemoryRepo

from reapublix.analytics.flush import flush_view_counts
from reapublix.cache.redis_store import ViewCountBuffer


class TestFlushViewCounts(unittest.TestCase):
    def setUp(self):
        self.repo = InMemoryRepo()
        self.buffer = ViewCountBuffer(FakeRedis())

    def test_adds_counts_and_creates_missing_rows(self):
        self.repo.analytics[1] = InMemoryRepo._zero(1)
        self.repo.analytics[1]["view_count"] = 10
        for _ in range(3):
            self.buffer.increment(1)
        self.buffer.increment(2)

        flushed = flush_view_counts(self.buffer, self.repo)

        self.assertEqual(flushed, 2)
        self.assertEqual(self.repo.analytics[1]["view_count"], 13)
        self.assertEqual(self.repo.analytics[2]["view_count"], 1)
        self.assertIsNotNone(self.repo.analytics[2]["last_viewed_at"])

    def test_one_failure_does_not_drop_the_rest(self):
        self.repo.fail_article_ids.add(1)
        self.buffer.increment(1)
        self.buffer.increment(2)
        self.buffer.increment(2)

        flushed = flush_view_counts(self.buffer, self.repo)

        self.assertEqual(flushed, 1)
        self.assertEqual(self.repo.analytics[2]["view_count"], 2)
        self.assertNotIn(1, self.repo.analytics)
        # the failed count was drained and is not retried
        self.assertEqual(self.buffer.drain_all(), {})

    def test_nothing_pending(self):
        self.assertEqual(flush_view_counts(self.buffer, self.repo), 0)


if __name__ == "__main__":
    unittest.main()
