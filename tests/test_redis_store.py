import unittest

from fakes import FakeRedis

from reapublix.cache.redis_store import ArticleCache, ViewCountBuffer


class TestViewCountBuffer(unittest.TestCase):
    def setUp(self):
        self.client = FakeRedis()
        self.buffer = ViewCountBuffer(self.client)

    def test_increment_then_drain(self):
        for _ in range(3):
            self.buffer.increment("x")
        self.assertEqual(self.buffer.drain_all(), {"x": 3})
        self.assertEqual(self.buffer.drain_all(), {})

    def test_drain_removes_keys(self):
        self.buffer.increment(42)
        self.buffer.drain_all()
        self.assertNotIn("views:pending:42", self.client.data)

    def test_increment_after_drain_goes_to_next_cycle(self):
        self.buffer.increment("a")
        self.buffer.increment("a")
        first = self.buffer.drain_all()
        self.buffer.increment("a")
        second = self.buffer.drain_all()
        self.assertEqual(first, {"a": 2})
        self.assertEqual(second, {"a": 1})

    def test_increment_between_keys_of_same_drain(self):
        self.buffer.increment("a")
        self.buffer.increment("b")
        original_getdel = self.client.getdel

        def getdel_with_late_view(key):
            value = original_getdel(key)
            if key.endswith(":a"):
                # a view for "a" lands right after its read-and-remove
                self.client.incr("views:pending:a")
            return value

        self.client.getdel = getdel_with_late_view
        first = self.buffer.drain_all()
        self.client.getdel = original_getdel
        second = self.buffer.drain_all()

        self.assertEqual(first, {"a": 1, "b": 1})
        self.assertEqual(second, {"a": 1})

    def test_zero_and_garbage_counters_skipped(self):
        self.client.data["views:pending:z"] = "0"
        self.client.data["views:pending:g"] = "oops"
        self.client.data["other:key"] = "5"
        self.assertEqual(self.buffer.drain_all(), {})
        self.assertEqual(self.client.data, {"other:key": "5"})

    def test_redis_errors_are_swallowed(self):
        self.client.fail = True
        self.buffer.increment("x")
        self.assertEqual(self.buffer.drain_all(), {})


class TestArticleCache(unittest.TestCase):
    def setUp(self):
        self.client = FakeRedis()
        self.cache = ArticleCache(self.client)

    def test_set_get_roundtrip(self):
        self.cache.set("articles:trending", [{"id": 1}], ttl_seconds=300)
        self.assertEqual(self.cache.get("articles:trending"), [{"id": 1}])
        self.assertIsNone(self.cache.get("articles:missing"))

    def test_invalidate_listings_clears_namespace_only(self):
        self.cache.set("articles:all:all:latest:1:20", {"a": 1})
        self.cache.set("articles:technology:all:popular:2:20", {"b": 2})
        self.client.data["views:pending:1"] = "4"
        removed = self.cache.invalidate_listings()
        self.assertEqual(removed, 2)
        self.assertEqual(list(self.client.data), ["views:pending:1"])

    def test_cache_errors_are_swallowed(self):
        self.client.fail = True
        self.cache.set("articles:x", 1)
        self.assertIsNone(self.cache.get("articles:x"))
        self.assertEqual(self.cache.invalidate_listings(), 0)


if __name__ == "__main__":
    unittest.main()
