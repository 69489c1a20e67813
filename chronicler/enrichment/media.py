"""
Media resolution for events.

Every event should carry at least one image of a minimum size. Embedded page
thumbnails are used when large enough; otherwise the first related page's
titles are searched on Commons, through the persistent media cache.
"""

from typing import Iterable, List, Optional

from ..clients.commons import CommonsClient
from ..models import MediaAssetSummary, RelatedPageSummary
from ..observability import EventLog, get_event_log
from .cache import (
    MISS,
    MediaCacheState,
    get_media_cache_asset,
    load_media_cache,
    make_media_cache_key,
    persist_media_cache,
    set_media_cache_asset,
)


def find_embedded_asset(
    pages: Iterable[RelatedPageSummary],
    min_width: int,
    min_height: int,
) -> Optional[MediaAssetSummary]:
    """First embedded thumbnail, across all pages, meeting the minimum size."""
    for page in pages:
        for asset in page.thumbnails:
            if asset.meets(min_width, min_height):
                return asset
    return None


def largest_known_asset(pages: Iterable[RelatedPageSummary]) -> Optional[MediaAssetSummary]:
    """The embedded image with the largest area, whatever its size."""
    best = None
    for page in pages:
        for asset in page.thumbnails:
            if best is None or asset.width * asset.height > best.width * best.height:
                best = asset
    return best


def build_query_candidates(pages: List[RelatedPageSummary]) -> List[str]:
    """Normalized, canonical and display title of the first page, deduplicated."""
    if not pages:
        return []

    primary = pages[0]
    queries: List[str] = []
    for title in (primary.normalized_title, primary.canonical_title, primary.display_title):
        if title and title.strip() and title not in queries:
            queries.append(title)
    return queries


class MediaResolver:
    """
    Picks an image for each event and owns the persistent cache for a run.

    The cache file is loaded on first use and written by flush().
    """

    def __init__(
        self,
        commons: Optional[CommonsClient],
        min_width: int = 800,
        min_height: int = 600,
        limit: int = 5,
        enable_commons_fallback: bool = True,
        cache_path: Optional[str] = None,
        cache_ttl_ms: int = 604_800_000,
        cache_disabled: bool = False,
        log: Optional[EventLog] = None,
    ):
        """
        Initialize the resolver.

        Args:
            commons: Commons search client (None disables the fallback)
            min_width: Minimum acceptable image width
            min_height: Minimum acceptable image height
            limit: Result limit passed to the search, part of the cache key
            enable_commons_fallback: Search Commons when no thumbnail fits
            cache_path: Persistent cache file location
            cache_ttl_ms: Lifetime of cached search outcomes
            cache_disabled: Skip the persistent cache entirely
        """
        self.commons = commons
        self.min_width = min_width
        self.min_height = min_height
        self.limit = limit
        self.enable_commons_fallback = enable_commons_fallback and commons is not None
        self.cache_path = cache_path
        self.cache_ttl_ms = cache_ttl_ms
        self.cache_disabled = cache_disabled or not cache_path
        self.log = log or get_event_log("media")
        self._cache: Optional[MediaCacheState] = None

    @property
    def cache(self) -> Optional[MediaCacheState]:
        """The persistent cache, loaded on first access."""
        if self.cache_disabled:
            return None
        if self._cache is None:
            self._cache = load_media_cache(self.cache_path, log=self.log)
        return self._cache

    async def _search(self, query: str) -> Optional[MediaAssetSummary]:
        cache = self.cache
        key = make_media_cache_key(query, self.min_width, self.min_height, self.limit)

        if cache is not None:
            cached = get_media_cache_asset(cache, key)
            if cached is not MISS:
                self.log.debug("media-cache-hit", query=query, found=cached is not None)
                return cached

        completed, asset = await self.commons.search_outcome(query)
        if asset is not None and not asset.meets(self.min_width, self.min_height):
            asset = None

        # A failed search says nothing about whether an image exists.
        if cache is not None and completed:
            set_media_cache_asset(cache, key, asset, self.cache_ttl_ms)
        return asset

    async def ensure_media_for_event(self, pages: List[RelatedPageSummary]) -> Optional[MediaAssetSummary]:
        """
        Return an image of at least the minimum size for the given pages.

        Args:
            pages: Related pages of one event

        Returns:
            A qualifying asset, or None if none could be found
        """
        embedded = find_embedded_asset(pages, self.min_width, self.min_height)
        if embedded is not None:
            return embedded

        if not self.enable_commons_fallback or not pages:
            return None

        for query in build_query_candidates(pages):
            asset = await self._search(query)
            if asset is not None:
                self.log.debug("media-resolved", query=query, asset=asset.id)
                return asset

        return None

    def flush(self) -> bool:
        """Persist the cache if it was loaded and changed."""
        if self._cache is None:
            return False
        return persist_media_cache(self._cache, log=self.log)
