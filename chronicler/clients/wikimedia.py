"""
Client for the Wikimedia "On This Day" feed.

Fetches the selected events for a calendar day and normalizes each raw
event into a HistoricalEventRecord.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..errors import FeedError
from ..models import (
    EventDate,
    EventSourceRef,
    HistoricalEventRecord,
    MediaAssetSummary,
    RelatedPageSummary,
)
from ..observability import EventLog, get_event_log
from .http import RetryOptions, fetch_with_retry

WIKIMEDIA_ON_THIS_DAY_ENDPOINT = "https://api.wikimedia.org/feed/v1/wikipedia/en/onthisday/selected"

EVENT_ID_LENGTH = 32


def to_two_digits(value: int) -> str:
    return f"{value:02d}"


def build_cache_key(month: int, day: int) -> str:
    """Key of the raw payload document for a calendar day."""
    return f"onthisday:selected:{to_two_digits(month)}-{to_two_digits(day)}"


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class OnThisDayPayload:
    raw: Dict[str, Any]
    events: List[Dict[str, Any]]
    captured_at: str


async def fetch_on_this_day_selected(
    client: httpx.AsyncClient,
    month: int,
    day: int,
    user_agent: str,
    token: Optional[str] = None,
    base_url: Optional[str] = None,
    retry: Optional[RetryOptions] = None,
    log: Optional[EventLog] = None,
) -> OnThisDayPayload:
    """
    Fetch the selected events for a month/day.

    Args:
        client: Async HTTP client
        month: Month (1-12)
        day: Day of month (1-31)
        user_agent: Descriptive user agent, required by Wikimedia
        token: Optional API bearer token
        base_url: Override for the feed endpoint

    Returns:
        The raw payload, its ``selected`` events and the capture timestamp

    Raises:
        FeedError: If no user agent was given or the feed answered non-2xx
    """
    if not user_agent or not user_agent.strip():
        raise FeedError("Wikimedia requests require a descriptive user agent.")

    log = log or get_event_log("wikimedia")
    endpoint = f"{(base_url or WIKIMEDIA_ON_THIS_DAY_ENDPOINT).rstrip('/')}/{to_two_digits(month)}/{to_two_digits(day)}"

    headers = {"User-Agent": user_agent, "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    response = await fetch_with_retry(client, endpoint, headers=headers, options=retry, log=log)

    if not response.is_success:
        raise FeedError(
            f"Failed to fetch On This Day data: {response.status_code} {response.reason_phrase} -> {response.text}"
        )

    payload = response.json() or {}
    captured_at = utc_timestamp()
    events = payload.get("selected") or []
    log.info("feed-fetched", endpoint=endpoint, events=len(events))

    return OnThisDayPayload(raw=payload, events=events, captured_at=captured_at)


@dataclass
class NormalizationContext:
    month: int
    day: int
    captured_at: str
    raw_type: str
    cache_key: str


def _normalize_media(page_id: int, page: Dict[str, Any]) -> List[MediaAssetSummary]:
    assets = []
    description = page.get("description")

    for key, asset_type in (("thumbnail", "thumbnail"), ("originalimage", "original")):
        raw = page.get(key)
        if not isinstance(raw, dict) or not raw.get("source"):
            continue
        try:
            width = int(raw.get("width") or 0)
            height = int(raw.get("height") or 0)
        except (TypeError, ValueError):
            continue
        if width <= 0 or height <= 0:
            continue
        assets.append(MediaAssetSummary(
            id=f"{page_id}:{asset_type}",
            source_url=raw["source"],
            width=width,
            height=height,
            provider="wikimedia",
            asset_type=asset_type,
            alt_text=description,
        ))

    return assets


def _normalize_related_page(page: Dict[str, Any]) -> RelatedPageSummary:
    titles = page.get("titles") or {}
    urls = page.get("content_urls") or {}
    page_id = page.get("pageid") or 0
    title = page.get("title") or ""

    return RelatedPageSummary(
        page_id=page_id,
        canonical_title=titles.get("canonical") or title,
        display_title=titles.get("display") or page.get("displaytitle") or title,
        normalized_title=titles.get("normalized") or title,
        description=page.get("description"),
        extract=page.get("extract"),
        wikidata_id=page.get("wikibase_item"),
        desktop_url=(urls.get("desktop") or {}).get("page") or "",
        mobile_url=(urls.get("mobile") or {}).get("page") or "",
        thumbnails=_normalize_media(page_id, page),
    )


def build_event_id(event: Dict[str, Any], context: NormalizationContext) -> str:
    """
    Content-derived identifier of a raw event.

    The hash input is text, year, month, day and each page title joined by
    "|". Changing the order or length breaks idempotent re-ingestion.
    """
    year = event.get("year")
    parts = [
        event.get("text") or "",
        str(year) if year is not None else "unknown",
        str(context.month),
        str(context.day),
    ]
    for page in event.get("pages") or []:
        parts.append(page.get("title") or "")

    digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
    return digest[:EVENT_ID_LENGTH]


def build_source_ref(context: NormalizationContext) -> EventSourceRef:
    return EventSourceRef(
        raw_type=context.raw_type,
        source_date=f"{to_two_digits(context.month)}-{to_two_digits(context.day)}",
        captured_at=context.captured_at,
        payload_cache_key=context.cache_key,
    )


def normalize_event(event: Dict[str, Any], context: NormalizationContext) -> HistoricalEventRecord:
    """
    Convert one raw feed event into a HistoricalEventRecord.

    Categories, era and tags are left empty for the enrichment step.
    """
    text = event.get("text") or ""
    year = event.get("year")

    return HistoricalEventRecord(
        event_id=build_event_id(event, context),
        year=year if isinstance(year, int) else None,
        text=text,
        summary=text,
        categories=[],
        tags=[],
        date=EventDate(month=context.month, day=context.day),
        related_pages=[_normalize_related_page(page) for page in event.get("pages") or []],
        source=build_source_ref(context),
        created_at=context.captured_at,
        updated_at=context.captured_at,
    )
