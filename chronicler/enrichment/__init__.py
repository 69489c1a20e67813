"""Classification, media resolution, overrides and the enrichment orchestrator."""

from .classification import ClassificationResult, classify_event, determine_era
from .cache import (
    MISS,
    MediaCacheEntry,
    MediaCacheState,
    get_media_cache_asset,
    load_media_cache,
    make_media_cache_key,
    persist_media_cache,
    set_media_cache_asset,
)
from .media import MediaResolver
from .overrides import apply_media_override, apply_overrides, load_overrides
from .orchestrator import EventEnricher

__all__ = [
    "ClassificationResult",
    "classify_event",
    "determine_era",
    "MISS",
    "MediaCacheEntry",
    "MediaCacheState",
    "get_media_cache_asset",
    "load_media_cache",
    "make_media_cache_key",
    "persist_media_cache",
    "set_media_cache_asset",
    "MediaResolver",
    "apply_media_override",
    "apply_overrides",
    "load_overrides",
    "EventEnricher",
]
