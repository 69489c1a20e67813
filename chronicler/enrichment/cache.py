"""
Persistent media cache.

Commons search outcomes are stored on disk between runs, keyed by query and
search parameters. A stored ``None`` asset means "searched, nothing found"
and expires like any other entry. The file is read once at the start of a
run and written once at the end, and only when something changed.
"""

import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models import MediaAssetSummary
from ..observability import EventLog, get_event_log

CACHE_VERSION = 1

DEFAULT_MEDIA_CACHE_PATH = "cache/media-cache.json"

_log = get_event_log("media-cache")


class MediaCacheEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    asset: Optional[MediaAssetSummary] = None
    expires_at: int
    stored_at: str
    ttl_ms: int


@dataclass
class MediaCacheState:
    path: str
    entries: Dict[str, MediaCacheEntry] = field(default_factory=dict)
    dirty: bool = False


def now_ms() -> int:
    return int(time.time() * 1000)


def _iso_from_ms(value: int) -> str:
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_media_cache_key(query: str, min_width: int, min_height: int, limit: Optional[int] = None) -> str:
    """Normalized key: lowercased trimmed query plus search parameters."""
    return f"{query.strip().lower()}|{min_width}|{min_height}|{limit if limit is not None else 'default'}"


def load_media_cache(
    cache_path: str = DEFAULT_MEDIA_CACHE_PATH,
    now: Optional[int] = None,
    log: Optional[EventLog] = None,
) -> MediaCacheState:
    """
    Load the cache file, dropping expired entries.

    A missing file gives an empty cache. A file written with another
    version, or one that cannot be read or parsed, is discarded and the cache
    starts empty (marked dirty so the reset is written back).

    Args:
        cache_path: Location of the cache file
        now: Current time in epoch milliseconds
    """
    log = log or _log
    now = now_ms() if now is None else now
    path = Path(cache_path)

    if not path.exists():
        return MediaCacheState(path=str(path))

    try:
        with open(path, 'r', encoding='utf-8') as f:
            parsed = json.load(f)
    except (OSError, ValueError) as e:
        # ValueError covers both bad JSON and bad UTF-8.
        log.warning("media-cache-unreadable", path=str(path), error=str(e))
        return MediaCacheState(path=str(path), dirty=True)

    if not isinstance(parsed, dict) or parsed.get("version") != CACHE_VERSION or not isinstance(parsed.get("entries"), dict):
        log.debug("media-cache-version-mismatch", path=str(path))
        return MediaCacheState(path=str(path), dirty=True)

    state = MediaCacheState(path=str(path))
    for key, raw_entry in parsed["entries"].items():
        try:
            entry = MediaCacheEntry.model_validate(raw_entry)
        except ValueError:
            state.dirty = True
            continue
        if entry.expires_at > now:
            state.entries[key] = entry
        else:
            state.dirty = True

    log.debug("media-cache-loaded", path=str(path), entries=len(state.entries))
    return state


def get_media_cache_asset(cache: MediaCacheState, key: str, now: Optional[int] = None) -> Any:
    """
    Look up a cached search outcome.

    Returns:
        The cached asset, None for a cached "no match", or the MISS sentinel
        when the key is absent or expired
    """
    now = now_ms() if now is None else now
    entry = cache.entries.get(key)
    if entry is None:
        return MISS

    if entry.expires_at <= now:
        del cache.entries[key]
        cache.dirty = True
        return MISS

    return entry.asset


def set_media_cache_asset(
    cache: MediaCacheState,
    key: str,
    asset: Optional[MediaAssetSummary],
    ttl_ms: int,
    now: Optional[int] = None,
) -> None:
    """Store a search outcome; a non-positive TTL stores nothing."""
    if ttl_ms <= 0:
        return

    now = now_ms() if now is None else now
    cache.entries[key] = MediaCacheEntry(
        asset=asset,
        ttl_ms=ttl_ms,
        stored_at=_iso_from_ms(now),
        expires_at=now + ttl_ms,
    )
    cache.dirty = True


def persist_media_cache(cache: MediaCacheState, log: Optional[EventLog] = None) -> bool:
    """
    Write the cache file if it changed since it was loaded.

    A write failure is logged and leaves the cache dirty; the run goes on
    without a persisted cache.

    Returns:
        True if the file was written
    """
    if not cache.dirty:
        return False

    log = log or _log
    path = Path(cache.path)

    payload = {
        "version": CACHE_VERSION,
        "updatedAt": _iso_from_ms(now_ms()),
        "entries": {
            key: entry.model_dump(mode="json", by_alias=True, exclude_none=False)
            for key, entry in cache.entries.items()
        },
    }

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(payload, f, indent=2)
    except OSError as e:
        log.warning("media-cache-write-failed", path=str(path), error=str(e))
        return False

    log.debug("media-cache-persisted", path=str(path), entries=len(cache.entries))
    cache.dirty = False
    return True


class _Miss:
    """Marker for "not in cache", distinct from a cached None."""

    def __repr__(self) -> str:
        return "MISS"

    def __bool__(self) -> bool:
        return False


MISS = _Miss()
