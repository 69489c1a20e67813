"""
Unit tests for the On This Day feed client and event normalization.
"""

import hashlib
import unittest

import httpx

from chronicler.clients.wikimedia import (
    NormalizationContext,
    build_cache_key,
    build_event_id,
    fetch_on_this_day_selected,
    normalize_event,
    utc_timestamp,
)
from chronicler.errors import FeedError

RAW_EVENT = {
    "text": "Apollo 11 lands on the Moon.",
    "year": 1969,
    "pages": [
        {
            "pageid": 123,
            "title": "Apollo_11",
            "titles": {"canonical": "Apollo_11", "normalized": "Apollo 11", "display": "<i>Apollo 11</i>"},
            "description": "Crewed lunar landing",
            "extract": "Apollo 11 was the first crewed landing.",
            "wikibase_item": "Q43653",
            "content_urls": {
                "desktop": {"page": "https://en.wikipedia.org/wiki/Apollo_11"},
                "mobile": {"page": "https://en.m.wikipedia.org/wiki/Apollo_11"},
            },
            "thumbnail": {"source": "https://upload.wikimedia.org/thumb.jpg", "width": 320, "height": 240},
            "originalimage": {"source": "https://upload.wikimedia.org/full.jpg", "width": 3000, "height": 2000},
        },
        {"pageid": 456, "title": "Moon"},
    ],
}


def make_context(month=7, day=20):
    return NormalizationContext(
        month=month,
        day=day,
        captured_at="2024-07-20T00:00:00.000Z",
        raw_type="selected",
        cache_key=build_cache_key(month, day),
    )


class TestNormalization(unittest.TestCase):
    """Test event normalization."""

    def test_cache_key_is_zero_padded(self):
        self.assertEqual(build_cache_key(7, 4), "onthisday:selected:07-04")

    def test_event_id_is_deterministic(self):
        first = normalize_event(RAW_EVENT, make_context())
        second = normalize_event(dict(RAW_EVENT), make_context())
        self.assertEqual(first.event_id, second.event_id)
        self.assertEqual(len(first.event_id), 32)

    def test_event_id_hash_input(self):
        expected = hashlib.sha256(
            "Apollo 11 lands on the Moon.|1969|7|20|Apollo_11|Moon".encode("utf-8")
        ).hexdigest()[:32]
        self.assertEqual(build_event_id(RAW_EVENT, make_context()), expected)

    def test_event_id_changes_with_date(self):
        self.assertNotEqual(
            build_event_id(RAW_EVENT, make_context(7, 20)),
            build_event_id(RAW_EVENT, make_context(7, 21)),
        )

    def test_related_pages_and_media(self):
        event = normalize_event(RAW_EVENT, make_context())

        self.assertEqual(len(event.related_pages), 2)
        page = event.related_pages[0]
        self.assertEqual(page.page_id, 123)
        self.assertEqual(page.normalized_title, "Apollo 11")
        self.assertEqual(page.wikidata_id, "Q43653")
        self.assertEqual(page.desktop_url, "https://en.wikipedia.org/wiki/Apollo_11")
        self.assertEqual([asset.asset_type for asset in page.thumbnails], ["thumbnail", "original"])
        self.assertEqual(page.thumbnails[1].id, "123:original")
        self.assertEqual(page.thumbnails[1].width, 3000)

    def test_missing_optional_fields(self):
        event = normalize_event({"text": "Something happened.", "pages": [{"pageid": 1, "title": "X"}]},
                                make_context())

        self.assertIsNone(event.year)
        self.assertEqual(event.categories, [])
        page = event.related_pages[0]
        self.assertIsNone(page.extract)
        self.assertIsNone(page.wikidata_id)
        self.assertEqual(page.thumbnails, [])

    def test_source_reference(self):
        event = normalize_event(RAW_EVENT, make_context())

        self.assertEqual(event.source.source_date, "07-20")
        self.assertEqual(event.source.payload_cache_key, "onthisday:selected:07-20")
        self.assertEqual(event.to_document()["source"]["payloadCacheKey"], "onthisday:selected:07-20")

    def test_utc_timestamp_format(self):
        stamp = utc_timestamp()
        self.assertTrue(stamp.endswith("Z"))
        self.assertEqual(len(stamp), len("2024-07-20T00:00:00.000Z"))


class TestFetchOnThisDay(unittest.IsolatedAsyncioTestCase):
    """Test fetching the feed."""

    async def test_fetch_builds_endpoint_and_headers(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"selected": [RAW_EVENT]})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await fetch_on_this_day_selected(client, 7, 4, user_agent="TestAgent/1.0", token="secret")

        self.assertEqual(len(result.events), 1)
        self.assertEqual(result.raw["selected"][0]["year"], 1969)
        self.assertTrue(str(seen[0].url).endswith("/onthisday/selected/07/04"))
        self.assertEqual(seen[0].headers["User-Agent"], "TestAgent/1.0")
        self.assertEqual(seen[0].headers["Authorization"], "Bearer secret")

    async def test_user_agent_is_required(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))) as client:
            with self.assertRaises(FeedError):
                await fetch_on_this_day_selected(client, 7, 4, user_agent="  ")

    async def test_non_success_includes_body(self):
        def handler(request):
            return httpx.Response(404, text="no such day")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(FeedError) as ctx:
                await fetch_on_this_day_selected(client, 2, 30, user_agent="TestAgent/1.0")

        self.assertIn("404", str(ctx.exception))
        self.assertIn("no such day", str(ctx.exception))

    async def test_missing_selected_array(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))) as client:
            result = await fetch_on_this_day_selected(client, 1, 1, user_agent="TestAgent/1.0")

        self.assertEqual(result.events, [])


if __name__ == "__main__":
    unittest.main()
