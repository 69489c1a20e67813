"""
Ingestion pipeline.

One run covers one calendar day: load overrides, fetch the feed, normalize,
enrich, validate and then either log the write plan (dry run) or persist the
raw payload, the events and the digest in a single batch.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

import httpx

from .clients import (
    CommonsClient,
    NormalizationContext,
    RetryOptions,
    SearchMemo,
    WikidataClient,
    build_cache_key,
    fetch_on_this_day_selected,
    normalize_event,
)
from .config import ConfigManager, get_config
from .enrichment import EventEnricher, MediaResolver, load_overrides
from .models import CachedPayload, DailyDigestRecord, HistoricalEventRecord, OverrideConfig
from .observability import get_event_log
from .storage import DocumentStore, bootstrap_store
from .validation import assert_valid_payload

log = get_event_log("ingest")


def resolve_target_date(
    month: Optional[int] = None,
    day: Optional[int] = None,
    year: Optional[int] = None,
    today: Optional[date] = None,
) -> date:
    """
    Resolve the day to ingest; missing parts default to today (UTC).

    Raises:
        ValueError: If the parts don't form a real calendar date
    """
    today = today or datetime.now(timezone.utc).date()
    month = month if month is not None else today.month
    day = day if day is not None else today.day
    year = year if year is not None else today.year

    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    if not 1 <= day <= 31:
        raise ValueError(f"Day must be between 1 and 31, got {day}")

    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Invalid target date {year:04d}-{month:02d}-{day:02d}: {e}") from e


def build_digest_id(cache_key: str) -> str:
    return f"digest:{cache_key}"


@dataclass
class IngestOptions:
    """Command line options of one ingestion run."""
    month: Optional[int] = None
    day: Optional[int] = None
    year: Optional[int] = None
    dry_run: bool = False
    user_agent: Optional[str] = None
    token: Optional[str] = None
    service_account_path: Optional[str] = None
    service_account_json: Optional[str] = None
    project_id: Optional[str] = None


@dataclass
class WritePlan:
    """What a run writes (or would write in dry-run mode)."""
    payload_key: str
    event_ids: List[str] = field(default_factory=list)
    digest_id: Optional[str] = None

    def describe(self) -> List[str]:
        lines = [f"Would persist payload cache entry: {self.payload_key}"]
        lines.append(f"Would persist events: {self.event_ids}")
        if self.digest_id:
            lines.append(f"Would persist digest: {self.digest_id}")
        else:
            lines.append("No digest: no events for this date")
        return lines


@dataclass
class IngestionResult:
    target_date: date
    payload: CachedPayload
    events: List[HistoricalEventRecord]
    digest: Optional[DailyDigestRecord]
    plan: WritePlan
    events_fetched: int = 0
    written: int = 0
    dry_run: bool = False

    def summary(self) -> Dict[str, object]:
        return {
            "eventsFetched": self.events_fetched,
            "eventsStored": len(self.events),
            "cacheKey": self.payload.key,
            "isoDate": self.target_date.isoformat(),
            "written": self.written,
        }


def normalize_events(
    raw_events: List[dict],
    month: int,
    day: int,
    captured_at: str,
    cache_key: str,
) -> List[HistoricalEventRecord]:
    """
    Normalize raw feed events, keeping the first of any duplicate ids.
    """
    normalized: List[HistoricalEventRecord] = []
    seen = set()

    for raw_event in raw_events:
        if not isinstance(raw_event, dict):
            log.warning("feed-event-skipped", reason="not an object")
            continue
        context = NormalizationContext(
            month=month,
            day=day,
            captured_at=captured_at,
            raw_type=raw_event.get("type") or "selected",
            cache_key=cache_key,
        )
        event = normalize_event(raw_event, context)
        if event.event_id in seen:
            log.debug("duplicate-event-skipped", event=event.event_id)
            continue
        seen.add(event.event_id)
        normalized.append(event)

    return normalized


def build_enricher(
    http_client: httpx.AsyncClient,
    config: ConfigManager,
    user_agent: str,
    overrides: OverrideConfig,
) -> EventEnricher:
    """Wire the entity client, Commons client and media resolver from config."""
    wikidata = WikidataClient(
        http_client,
        user_agent=user_agent,
        language=config.wikidata_language,
        base_url=config.entity_url,
        concurrency=config.wikidata_concurrency,
        retry=RetryOptions(
            attempts=config.wikidata_retry_attempts,
            base_delay_ms=config.wikidata_retry_base_delay_ms,
        ),
    )
    commons = CommonsClient(
        http_client,
        user_agent=user_agent,
        base_url=config.commons_url,
        limit=config.media_search_limit,
        min_width=config.media_min_width,
        min_height=config.media_min_height,
        require_license=config.media_require_license,
        retry=RetryOptions(
            attempts=config.media_retry_attempts,
            base_delay_ms=config.media_retry_base_delay_ms,
        ),
        memo=SearchMemo(ttl_ms=config.media_search_memo_ttl_ms),
    )
    media = MediaResolver(
        commons,
        min_width=config.media_min_width,
        min_height=config.media_min_height,
        limit=config.media_search_limit,
        cache_path=config.media_cache_path,
        cache_ttl_ms=config.media_cache_ttl_ms,
        cache_disabled=config.media_cache_disabled,
    )
    return EventEnricher(wikidata, media, overrides=overrides)


def write_batch(
    store: DocumentStore,
    payload: CachedPayload,
    events: List[HistoricalEventRecord],
    digest: Optional[DailyDigestRecord],
    collections: Dict[str, str],
) -> int:
    """
    Upsert payload, events and digest in one atomic batch.

    The store must be connected.

    Returns:
        Number of documents written
    """
    batch = store.batch()
    batch.set(collections["payload_cache"], payload.key, payload.to_document(), merge=True)
    for event in events:
        batch.set(collections["events"], event.event_id, event.to_document(), merge=True)
    if digest is not None:
        batch.set(collections["digests"], digest.digest_id, digest.to_document(), merge=True)
    return batch.commit()


async def run_ingestion(
    options: IngestOptions,
    config: Optional[ConfigManager] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    store: Optional[DocumentStore] = None,
) -> IngestionResult:
    """
    Run the whole pipeline for one day.

    Args:
        options: Parsed command line options
        config: Configuration (defaults to the global instance)
        http_client: HTTP client to use; one is created and closed when omitted
        store: Document store; bootstrapped from credentials when omitted

    Returns:
        IngestionResult describing what was (or would be) written

    Raises:
        ChroniclerError: On feed, override, validation or store failures
        ValueError: If the target date is invalid
    """
    config = config or get_config()
    target = resolve_target_date(options.month, options.day, options.year)

    # Fail on a broken override file before any network work.
    overrides = load_overrides(config.overrides_path)

    user_agent = options.user_agent or config.user_agent
    token = options.token or config.wikimedia_token
    cache_key = build_cache_key(target.month, target.day)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient(timeout=config.http_timeout)
    try:
        feed = await fetch_on_this_day_selected(
            client,
            target.month,
            target.day,
            user_agent=user_agent,
            token=token,
            base_url=config.feed_url,
        )
        normalized = normalize_events(feed.events, target.month, target.day, feed.captured_at, cache_key)
        enricher = build_enricher(client, config, user_agent, overrides)
        events = await enricher.enrich_events(normalized)
    finally:
        if owns_client:
            await client.aclose()

    payload = CachedPayload(
        key=cache_key,
        fetched_at=feed.captured_at,
        month=target.month,
        day=target.day,
        payload=feed.raw,
    )

    digest = None
    if events:
        digest = DailyDigestRecord(
            digest_id=build_digest_id(cache_key),
            date=target.isoformat(),
            event_ids=[event.event_id for event in events],
            created_at=feed.captured_at,
            updated_at=feed.captured_at,
        )

    assert_valid_payload(events, digest, payload)

    plan = WritePlan(
        payload_key=payload.key,
        event_ids=[event.event_id for event in events],
        digest_id=digest.digest_id if digest else None,
    )
    result = IngestionResult(
        target_date=target,
        payload=payload,
        events=events,
        digest=digest,
        plan=plan,
        events_fetched=len(feed.events),
        dry_run=options.dry_run,
    )

    if options.dry_run:
        for line in plan.describe():
            log.info(f"[dry-run] {line}")
        log.info("ingestion-summary", **result.summary())
        return result

    if store is None:
        store = bootstrap_store(
            service_account_path=options.service_account_path or config.service_account_path,
            service_account_json=options.service_account_json or config.service_account_json,
            project_id=options.project_id or config.project_id,
            database_dir=config.database_dir,
        )

    with store:
        result.written = write_batch(store, payload, events, digest, config.collections)

    log.info("ingestion-completed", **result.summary())
    return result
