"""
Wikimedia Commons title search, used to find images for events whose
pages carry no large enough thumbnail.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from urllib.parse import urlencode

import httpx

from ..errors import RetryExhaustedError
from ..models import MediaAssetSummary
from ..observability import EventLog, get_event_log
from .http import RetryOptions, fetch_with_retry

COMMONS_SEARCH_ENDPOINT = "https://api.wikimedia.org/core/v1/commons/search/title"

PERMISSIVE_LICENSE_MARKERS = (
    "creative commons",
    "creativecommons.org",
    "cc-by",
    "cc by",
    "cc0",
    "public domain",
    "publicdomain",
)


def is_acceptable_commons_license(license: Optional[Dict[str, Any]]) -> bool:
    """
    True when license metadata names a Creative Commons or public domain
    license, either in its name or its URL.
    """
    if not license:
        return False

    haystack = " ".join(
        str(license.get(key) or "") for key in ("name", "url")
    ).lower()
    if not haystack.strip():
        return False

    return any(marker in haystack for marker in PERMISSIVE_LICENSE_MARKERS)


def pick_best_asset(
    page: Dict[str, Any],
    min_width: int,
    min_height: int,
    require_license: bool = False,
) -> Optional[MediaAssetSummary]:
    """
    Select the image of one search result, or None.

    The original rendition is preferred over the thumbnail; renditions
    smaller than the minimum dimensions are rejected.
    """
    license = page.get("license") or {}
    if require_license and not is_acceptable_commons_license(license):
        return None

    for key, asset_type in (("original", "original"), ("thumbnail", "thumbnail")):
        candidate = page.get(key)
        if not isinstance(candidate, dict) or not candidate.get("url"):
            continue
        width = candidate.get("width") or 0
        height = candidate.get("height") or 0
        if width < min_width or height < min_height:
            continue

        descriptions = (page.get("terms") or {}).get("description") or []
        return MediaAssetSummary(
            id=page.get("title") or candidate["url"],
            source_url=candidate["url"],
            width=width,
            height=height,
            provider="wikimedia",
            asset_type=asset_type,
            license=license.get("name"),
            attribution=license.get("url"),
            alt_text=descriptions[0] if descriptions else None,
        )

    return None


class SearchMemo:
    """
    In-memory memo of search outcomes with its own TTL.

    Separate from the persistent media cache; lives as long as the client.
    """

    def __init__(self, ttl_ms: int = 600_000, clock: Callable[[], float] = time.time):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: Dict[Tuple[str, int, int, int], Tuple[float, Optional[MediaAssetSummary]]] = {}

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def lookup(self, key: Tuple[str, int, int, int]) -> Tuple[bool, Optional[MediaAssetSummary]]:
        """Return (hit, asset). A hit may carry None for "no match"."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        expires_at, asset = entry
        if expires_at <= self._now_ms():
            del self._entries[key]
            return False, None
        return True, asset

    def remember(self, key: Tuple[str, int, int, int], asset: Optional[MediaAssetSummary]) -> None:
        if self.ttl_ms <= 0:
            return
        self._entries[key] = (self._now_ms() + self.ttl_ms, asset)


class CommonsClient:
    """
    Searches Commons for a file whose image meets the minimum size.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        user_agent: str,
        base_url: Optional[str] = None,
        limit: int = 5,
        min_width: int = 800,
        min_height: int = 600,
        require_license: bool = True,
        retry: Optional[RetryOptions] = None,
        memo: Optional[SearchMemo] = None,
        log: Optional[EventLog] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.http_client = http_client
        self.user_agent = user_agent
        self.base_url = base_url or COMMONS_SEARCH_ENDPOINT
        self.limit = limit
        self.min_width = min_width
        self.min_height = min_height
        self.require_license = require_license
        self.retry = retry or RetryOptions()
        self.memo = memo if memo is not None else SearchMemo()
        self.log = log or get_event_log("commons")
        self._sleep = sleep

    async def search(self, query: str) -> Optional[MediaAssetSummary]:
        """
        Return the first qualifying image for a title query, or None.

        Failures are logged and reported as no match.
        """
        _, asset = await self.search_outcome(query)
        return asset

    async def search_outcome(self, query: str) -> Tuple[bool, Optional[MediaAssetSummary]]:
        """
        Search and report whether the search actually completed.

        Returns:
            (completed, asset). ``completed`` is False when Commons could not
            be queried (blank query, exhausted retries, non-2xx status or an
            unparseable body); only completed outcomes are worth caching.
        """
        if not query or not query.strip():
            return False, None

        memo_key = (query.strip().lower(), self.min_width, self.min_height, self.limit)
        hit, asset = self.memo.lookup(memo_key)
        if hit:
            return True, asset

        endpoint = f"{self.base_url}?{urlencode({'q': query, 'limit': self.limit})}"
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}

        try:
            response = await fetch_with_retry(
                self.http_client, endpoint, headers=headers, options=self.retry,
                label=f"commons {query!r}", log=self.log, sleep=self._sleep,
            )
        except RetryExhaustedError as e:
            self.log.warning("commons-unavailable", query=query, error=str(e))
            return False, None

        if not response.is_success:
            self.log.warning("commons-search-failed", query=query,
                             status=response.status_code, body=response.text[:200])
            return False, None

        try:
            body = response.json()
        except ValueError as e:
            self.log.warning("commons-invalid-json", query=query, error=str(e))
            return False, None

        if not isinstance(body, dict):
            self.log.warning("commons-invalid-json", query=query, error="body is not an object")
            return False, None

        pages = body.get("pages")
        if not isinstance(pages, list):
            pages = []

        asset = None
        for page in pages:
            if not isinstance(page, dict):
                continue
            asset = pick_best_asset(page, self.min_width, self.min_height, self.require_license)
            if asset is not None:
                break

        self.memo.remember(memo_key, asset)
        self.log.debug("commons-searched", query=query, results=len(pages), found=asset is not None)
        return True, asset
