"""
Unit tests for knowledge-graph entity resolution.
"""

import asyncio
import unittest

import httpx

from chronicler.clients.http import RetryOptions
from chronicler.clients.wikidata import (
    EntityCache,
    WikidataClient,
    extract_entity_ids,
    parse_time_claim,
    run_with_concurrency,
    to_entity_summary,
)
from chronicler.models import EntityRef, TimePoint, narrow_claim_value


def entity_claim(entity_id=None, numeric_id=None):
    value = {"entity-type": "item"}
    if entity_id:
        value["id"] = entity_id
    if numeric_id:
        value["numeric-id"] = numeric_id
    return {"mainsnak": {"datavalue": {"value": value}}}


def time_claim(time):
    return {"mainsnak": {"datavalue": {"value": {"time": time, "precision": 11}}}}


def entity_document(entity_id, label, instance_of=(), participants=(), point_in_time=None):
    claims = {
        "P31": [entity_claim(i) for i in instance_of],
        "P710": [entity_claim(p) for p in participants],
    }
    if point_in_time:
        claims["P585"] = [time_claim(point_in_time)]
    return {
        "id": entity_id,
        "labels": {"en": {"language": "en", "value": label}},
        "descriptions": {"en": {"language": "en", "value": f"{label} description"}},
        "claims": claims,
    }


def entity_transport(documents, calls, statuses=None):
    """Serve entity documents keyed by id; unknown ids get a 404."""
    statuses = statuses or {}

    def handler(request):
        entity_id = request.url.path.rsplit("/", 1)[-1].replace(".json", "")
        calls.append(entity_id)
        if entity_id in statuses:
            return httpx.Response(statuses[entity_id])
        document = documents.get(entity_id)
        if document is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, json={"entities": {document["id"]: document}})

    return httpx.MockTransport(handler)


async def no_sleep(seconds):
    return None


class TestClaimParsing(unittest.TestCase):
    """Test claim narrowing and entity summaries."""

    def test_narrow_claim_value_variants(self):
        self.assertEqual(narrow_claim_value({"id": "Q5"}), EntityRef("Q5"))
        self.assertEqual(narrow_claim_value({"numeric-id": 42}), EntityRef("Q42"))
        self.assertEqual(narrow_claim_value({"time": "+1969-07-20T00:00:00Z"}), TimePoint("+1969-07-20T00:00:00Z"))
        self.assertIsNone(narrow_claim_value("plain string"))
        self.assertIsNone(narrow_claim_value({"amount": "+5"}))

    def test_extract_entity_ids_dedupes(self):
        claims = [entity_claim("Q1"), entity_claim(numeric_id=2), entity_claim("Q1"), {"mainsnak": {}}]
        self.assertEqual(extract_entity_ids(claims), ["Q1", "Q2"])

    def test_parse_time_claim(self):
        self.assertEqual(parse_time_claim([time_claim("+1969-07-20T00:00:00Z")]), "1969-07-20")
        self.assertEqual(
            parse_time_claim([time_claim("+0000-00-00T00:00:00Z"), time_claim("+1815-06-18T00:00:00Z")]),
            "1815-06-18",
        )
        self.assertIsNone(parse_time_claim(None))

    def test_to_entity_summary(self):
        document = entity_document("Q43653", "Apollo 11", instance_of=["Q11016"],
                                   participants=["Q1615"], point_in_time="+1969-07-20T00:00:00Z")
        document["claims"]["P279"] = [entity_claim("Q1")]
        document["claims"]["P136"] = [entity_claim("Q2")]

        summary = to_entity_summary(document)

        self.assertEqual(summary.label, "Apollo 11")
        self.assertEqual(summary.instance_of_ids, ["Q11016"])
        self.assertEqual(summary.participant_ids, ["Q1615"])
        self.assertEqual(summary.point_in_time, "1969-07-20")
        self.assertEqual(summary.type_ids, ["Q11016", "Q1", "Q2"])

    def test_label_falls_back_to_english_then_id(self):
        document = entity_document("Q1", "Universe")
        self.assertEqual(to_entity_summary(document, language="de").label, "Universe")

        document["labels"] = {}
        self.assertEqual(to_entity_summary(document).label, "Q1")

    def test_malformed_claims_are_skipped(self):
        claims = [{"mainsnak": "x"}, {"mainsnak": {"datavalue": "y"}}, "z", entity_claim("Q7")]
        self.assertEqual(extract_entity_ids(claims), ["Q7"])
        self.assertEqual(extract_entity_ids("not a list"), [])

        summary = to_entity_summary({"id": "Q1", "labels": "bad", "claims": ["bad"]})
        self.assertEqual(summary.label, "Q1")
        self.assertEqual(summary.instance_of_ids, [])


class TestRunWithConcurrency(unittest.IsolatedAsyncioTestCase):
    """Test the bounded worker pool."""

    async def test_limit_is_respected(self):
        in_flight = 0
        peak = 0

        async def handler(item):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0)
            in_flight -= 1
            return item * 2

        results = await run_with_concurrency(range(10), 3, handler)

        self.assertEqual(sorted(results), [i * 2 for i in range(10)])
        self.assertLessEqual(peak, 3)

    async def test_sequential_when_limit_is_one(self):
        order = []

        async def handler(item):
            order.append(item)
            return item

        results = await run_with_concurrency(["a", "b", "c"], 1, handler)
        self.assertEqual(order, ["a", "b", "c"])
        self.assertEqual(results, ["a", "b", "c"])

    async def test_failure_cancels_calls_in_flight(self):
        cancelled = []

        async def handler(item):
            if item == "bad":
                raise RuntimeError("boom")
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(item)
                raise
            return item

        with self.assertRaises(RuntimeError):
            await run_with_concurrency(["slow", "bad", "later"], 2, handler)

        self.assertEqual(cancelled, ["slow"])


class TestWikidataClient(unittest.IsolatedAsyncioTestCase):
    """Test entity fetching and caching."""

    def make_client(self, transport, **kwargs):
        self.http = httpx.AsyncClient(transport=transport)
        return WikidataClient(self.http, user_agent="TestAgent/1.0", sleep=no_sleep,
                              retry=RetryOptions(attempts=2), **kwargs)

    async def asyncTearDown(self):
        await self.http.aclose()

    async def test_fetch_entities_returns_map_and_dedupes(self):
        calls = []
        documents = {
            "Q1": entity_document("Q1", "One"),
            "Q2": entity_document("Q2", "Two"),
        }
        client = self.make_client(entity_transport(documents, calls))

        result = await client.fetch_entities(["Q1", "Q2", "Q1", ""])

        self.assertEqual(set(result), {"Q1", "Q2"})
        self.assertEqual(sorted(calls), ["Q1", "Q2"])

    async def test_successes_and_misses_are_cached(self):
        calls = []
        client = self.make_client(entity_transport({"Q1": entity_document("Q1", "One")}, calls))

        await client.fetch_entities(["Q1", "Q404"])
        await client.fetch_entities(["Q1", "Q404"])

        self.assertEqual(sorted(calls), ["Q1", "Q404"])
        self.assertIsNone(await client.fetch_entity("Q404"))

    async def test_redirect_is_keyed_by_resolved_id(self):
        calls = []
        documents = {"Q100": entity_document("Q200", "Target")}
        client = self.make_client(entity_transport(documents, calls))

        result = await client.fetch_entities(["Q100"])

        self.assertIn("Q200", result)
        self.assertNotIn("Q100", result)

    async def test_unavailable_entity_is_not_fatal_or_cached(self):
        calls = []
        documents = {"Q1": entity_document("Q1", "One")}
        client = self.make_client(entity_transport(documents, calls, statuses={"Q9": 503}))

        result = await client.fetch_entities(["Q1", "Q9"])
        self.assertEqual(set(result), {"Q1"})
        self.assertEqual(calls.count("Q9"), 2)

        await client.fetch_entity("Q9")
        self.assertEqual(calls.count("Q9"), 4)

    async def test_shared_cache_between_clients(self):
        calls = []
        cache = EntityCache()
        transport = entity_transport({"Q1": entity_document("Q1", "One")}, calls)
        client = self.make_client(transport, cache=cache)
        other = WikidataClient(self.http, user_agent="TestAgent/1.0", cache=cache)

        await client.fetch_entity("Q1")
        summary = await other.fetch_entity("Q1")

        self.assertEqual(summary.label, "One")
        self.assertEqual(calls, ["Q1"])

    async def test_malformed_entity_does_not_abort_batch(self):
        calls = []
        documents = {
            "Q1": {"id": "Q1", "claims": {"P31": [{"mainsnak": "x"}]}},
            "Q2": entity_document("Q2", "Two", instance_of=["Q5"]),
        }
        client = self.make_client(entity_transport(documents, calls))

        result = await client.fetch_entities(["Q1", "Q2"])

        self.assertEqual(set(result), {"Q1", "Q2"})
        self.assertEqual(result["Q1"].instance_of_ids, [])
        self.assertEqual(result["Q2"].instance_of_ids, ["Q5"])

    async def test_unexpected_error_for_one_entity_is_isolated(self):
        calls = []
        client = self.make_client(entity_transport({"Q2": entity_document("Q2", "Two")}, calls))
        original = client.fetch_entity

        async def flaky(entity_id):
            if entity_id == "Q1":
                raise AttributeError("'str' object has no attribute 'get'")
            return await original(entity_id)

        client.fetch_entity = flaky

        result = await client.fetch_entities(["Q1", "Q2"])

        self.assertEqual(set(result), {"Q2"})


if __name__ == "__main__":
    unittest.main()
