import unittest
from datetime import datetime, timedelta, timezone

from reapublix.ingestion.normalize import (
    MAX_IMAGE_URL_LENGTH,
    normalize_article,
    parse_published_at,
    strip_truncation_markers,
)


def _article(**kwargs):
    base = {"url": "https://example.com/a", "source_id": "test", "provider_name": "Test", "category": "news"}
    base.update(kwargs)
    return normalize_article(**base)


class TestNormalize(unittest.TestCase):
    def test_title_truncated_to_500(self):
        a = _article(title="x" * 600)
        self.assertEqual(len(a.title), 500)

    def test_summary_and_image_truncated(self):
        a = _article(summary="s" * 1500, image_url="https://img.example.com/" + "p" * 3000)
        self.assertEqual(len(a.summary), 1000)
        self.assertEqual(len(a.image_url), MAX_IMAGE_URL_LENGTH)

    def test_missing_fields(self):
        a = _article(title=None, summary=None, author="")
        self.assertEqual(a.title, "Untitled")
        self.assertEqual(a.summary, "")
        self.assertIsNone(a.author)
        self.assertIsNone(a.image_url)

    def test_strips_chars_marker(self):
        self.assertEqual(strip_truncation_markers("Markets rallied on Friday… [+2345 chars]"), "Markets rallied on Friday…")
        self.assertEqual(strip_truncation_markers("Body text... [120 chars]"), "Body text...")
        a = _article(content="Full story [+99 chars]")
        self.assertEqual(a.content, "Full story")

    def test_explicit_date_kept(self):
        a = _article(published_at="2024-03-01T10:00:00Z")
        self.assertEqual(a.published_at, datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc))
        self.assertFalse(a.published_at_estimated)

    def test_missing_date_falls_back_to_now_and_is_flagged(self):
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        a = _article(published_at=None, now=now)
        self.assertEqual(a.published_at, now)
        self.assertTrue(a.published_at_estimated)

    def test_parse_rfc822(self):
        parsed = parse_published_at("Tue, 05 Mar 2024 14:30:00 +0100")
        self.assertEqual(parsed.utcoffset(), timedelta(hours=1))
        self.assertEqual(parsed.hour, 14)

    def test_parse_garbage(self):
        self.assertIsNone(parse_published_at("not a date"))


if __name__ == "__main__":
    unittest.main()
