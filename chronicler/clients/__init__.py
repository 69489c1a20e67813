"""HTTP clients for the upstream Wikimedia APIs."""

from .http import RetryOptions, fetch_with_retry, compute_backoff_delay
from .wikimedia import (
    NormalizationContext,
    OnThisDayPayload,
    build_cache_key,
    fetch_on_this_day_selected,
    normalize_event,
)
from .wikidata import EntityCache, WikidataClient, run_with_concurrency
from .commons import CommonsClient, SearchMemo, is_acceptable_commons_license, pick_best_asset

__all__ = [
    "RetryOptions",
    "fetch_with_retry",
    "compute_backoff_delay",
    "NormalizationContext",
    "OnThisDayPayload",
    "build_cache_key",
    "fetch_on_this_day_selected",
    "normalize_event",
    "EntityCache",
    "WikidataClient",
    "run_with_concurrency",
    "CommonsClient",
    "SearchMemo",
    "is_acceptable_commons_license",
    "pick_best_asset",
]
