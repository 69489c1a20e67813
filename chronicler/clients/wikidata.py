"""
Knowledge-graph entity resolution.

Entities are fetched one JSON document at a time, a bounded number in
flight, and both hits and permanent misses are remembered for the lifetime
of the EntityCache.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Set, TypeVar
from urllib.parse import quote

import httpx

from ..errors import RetryExhaustedError
from ..models import EntityRef, TimePoint, WikidataEntitySummary, narrow_claim_value
from ..observability import EventLog, get_event_log
from .http import RetryOptions, fetch_with_retry

WIKIDATA_ENTITY_ENDPOINT = "https://www.wikidata.org/wiki/Special:EntityData"

INSTANCE_OF = "P31"
SUBCLASS_OF = "P279"
GENRE = "P136"
PARTICIPANT = "P710"
POINT_IN_TIME = "P585"

T = TypeVar("T")
R = TypeVar("R")


def _claim_values(claims: Optional[list]) -> List[object]:
    values = []
    if not isinstance(claims, list):
        return values
    for claim in claims:
        if not isinstance(claim, dict):
            continue
        snak = claim.get("mainsnak")
        datavalue = snak.get("datavalue") if isinstance(snak, dict) else None
        if not isinstance(datavalue, dict):
            continue
        value = narrow_claim_value(datavalue.get("value"))
        if value is not None:
            values.append(value)
    return values


def extract_entity_ids(claims: Optional[list]) -> List[str]:
    """Entity ids referenced by a claim list, deduplicated in order."""
    ids: List[str] = []
    for value in _claim_values(claims):
        if isinstance(value, EntityRef) and value.id not in ids:
            ids.append(value.id)
    return ids


def parse_time_claim(claims: Optional[list]) -> Optional[str]:
    """
    First usable date of a time-valued claim list.

    ``+1969-07-20T00:00:00Z`` becomes ``1969-07-20``; zero dates are skipped.
    """
    for value in _claim_values(claims):
        if not isinstance(value, TimePoint):
            continue
        normalized = value.time[1:] if value.time.startswith("+") else value.time
        iso_date = normalized[:10]
        if iso_date and iso_date != "0000-00-00":
            return iso_date
    return None


def _localized(values: Optional[dict], language: str) -> Optional[str]:
    if not isinstance(values, dict):
        return None
    for lang in (language, "en"):
        entry = values.get(lang)
        if isinstance(entry, dict) and entry.get("value"):
            return entry["value"]
    return None


def to_entity_summary(entity: dict, language: str = "en") -> WikidataEntitySummary:
    """Build a WikidataEntitySummary from a raw entity document."""
    claims = entity.get("claims")
    if not isinstance(claims, dict):
        claims = {}
    entity_id = entity["id"]

    return WikidataEntitySummary(
        id=entity_id,
        label=_localized(entity.get("labels"), language) or entity_id,
        description=_localized(entity.get("descriptions"), language),
        instance_of_ids=extract_entity_ids(claims.get(INSTANCE_OF)),
        subclass_of_ids=extract_entity_ids(claims.get(SUBCLASS_OF)),
        genre_ids=extract_entity_ids(claims.get(GENRE)),
        participant_ids=extract_entity_ids(claims.get(PARTICIPANT)),
        point_in_time=parse_time_claim(claims.get(POINT_IN_TIME)),
    )


class EntityCache:
    """
    Process-lifetime cache of resolved entities and permanent misses.
    """

    def __init__(self):
        self._entities: Dict[str, WikidataEntitySummary] = {}
        self._failures: Set[str] = set()

    @staticmethod
    def make_key(entity_id: str, language: str, base_url: str) -> str:
        return f"{entity_id}:{language}:{base_url}"

    def get(self, key: str) -> Optional[WikidataEntitySummary]:
        return self._entities.get(key)

    def has_failed(self, key: str) -> bool:
        return key in self._failures

    def store(self, key: str, summary: WikidataEntitySummary) -> None:
        self._entities[key] = summary

    def mark_failed(self, key: str) -> None:
        self._failures.add(key)

    def __len__(self) -> int:
        return len(self._entities) + len(self._failures)


async def run_with_concurrency(
    items: Iterable[T],
    limit: int,
    handler: Callable[[T], Awaitable[R]],
) -> List[R]:
    """
    Run handler over items with at most ``limit`` calls in flight.

    Items start in FIFO order; results are returned in completion order.
    If a handler raises, the calls still in flight are cancelled and awaited
    before the error propagates.
    """
    queue = list(items)
    results: List[R] = []

    if limit <= 1:
        for item in queue:
            results.append(await handler(item))
        return results

    active: Set[asyncio.Task] = set()

    try:
        while queue or active:
            while queue and len(active) < limit:
                active.add(asyncio.ensure_future(handler(queue.pop(0))))

            done, active = await asyncio.wait(active, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                results.append(task.result())
    except BaseException:
        for task in active:
            task.cancel()
        await asyncio.gather(*active, return_exceptions=True)
        raise

    return results


class WikidataClient:
    """
    Resolves knowledge-graph entity ids into WikidataEntitySummary objects.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        user_agent: str,
        language: str = "en",
        base_url: Optional[str] = None,
        concurrency: int = 4,
        retry: Optional[RetryOptions] = None,
        cache: Optional[EntityCache] = None,
        log: Optional[EventLog] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            http_client: Async HTTP client used for every request
            user_agent: User agent sent to the entity API
            language: Preferred label/description language (falls back to en)
            base_url: Override for the entity endpoint
            concurrency: Maximum number of lookups in flight
            retry: Retry budget for each lookup
            cache: Shared cache; a private one is created when omitted
            log: Structured log sink
        """
        self.http_client = http_client
        self.user_agent = user_agent
        self.language = language
        self.base_url = (base_url or WIKIDATA_ENTITY_ENDPOINT).rstrip("/")
        self.concurrency = max(1, concurrency)
        self.retry = retry or RetryOptions()
        self.cache = cache if cache is not None else EntityCache()
        self.log = log or get_event_log("wikidata")
        self._sleep = sleep

    async def fetch_entity(self, entity_id: str) -> Optional[WikidataEntitySummary]:
        """
        Resolve a single entity.

        Returns:
            The summary, or None when the entity could not be resolved
        """
        cache_key = EntityCache.make_key(entity_id, self.language, self.base_url)

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached
        if self.cache.has_failed(cache_key):
            return None

        endpoint = f"{self.base_url}/{quote(entity_id, safe='')}.json"
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        try:
            response = await fetch_with_retry(
                self.http_client, endpoint, headers=headers, options=self.retry,
                label=f"wikidata {entity_id}", log=self.log, sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            # Transient; not remembered as a permanent miss.
            self.log.warning("wikidata-unavailable", entity=entity_id, error=str(e))
            return None

        if not response.is_success:
            self.log.warning("wikidata-fetch-failed", entity=entity_id,
                             status=response.status_code, body=response.text[:200])
            self.cache.mark_failed(cache_key)
            return None

        entities = (response.json() or {}).get("entities") or {}
        entity = entities.get(entity_id)
        if entity is None and len(entities) == 1:
            # Redirected ids come back under their target id.
            entity = next(iter(entities.values()))

        if not isinstance(entity, dict) or not entity.get("id"):
            self.log.warning("wikidata-entity-missing", entity=entity_id)
            self.cache.mark_failed(cache_key)
            return None

        summary = to_entity_summary(entity, self.language)
        self.cache.store(cache_key, summary)
        return summary

    async def fetch_entities(self, ids: Iterable[str]) -> Dict[str, WikidataEntitySummary]:
        """
        Resolve many entities with bounded concurrency.

        Args:
            ids: Entity ids; duplicates and blanks are ignored

        Returns:
            Mapping of resolved entity id to summary. Keys are the ids the
            API returned, which differ from the request for redirects.
        """
        unique_ids: List[str] = []
        for entity_id in ids:
            if entity_id and entity_id not in unique_ids:
                unique_ids.append(entity_id)

        summaries: Dict[str, WikidataEntitySummary] = {}

        async def resolve(entity_id: str) -> None:
            try:
                summary = await self.fetch_entity(entity_id)
            except Exception as e:
                # One bad entity never aborts the batch.
                self.log.warning("wikidata-entity-error", entity=entity_id,
                                 error=f"{type(e).__name__}: {e}")
                return
            if summary is not None:
                summaries[summary.id] = summary

        await run_with_concurrency(unique_ids, self.concurrency, resolve)
        self.log.debug("wikidata-resolved", requested=len(unique_ids), resolved=len(summaries))
        return summaries
