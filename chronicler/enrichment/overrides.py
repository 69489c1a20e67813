"""
Manual overrides.

An optional JSON file can force categories, era, tags or media onto an event
or suppress it. Overrides are merged after automated enrichment and win
over it. A missing file means no overrides; an invalid file aborts the run.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import OverrideError
from ..models import HistoricalEventRecord, MediaAssetSummary, MediaOverride, OverrideConfig

DEFAULT_OVERRIDE_PATH = "overrides/events.json"

DEFAULT_OVERRIDE_DIMENSION = 1024


def format_issue_path(loc: Iterable[Any]) -> str:
    path = ".".join(str(part) for part in loc)
    return path or "root"


def format_override_issues(error: PydanticValidationError) -> List[str]:
    """Render each schema violation as ``path: message``."""
    return [f"{format_issue_path(issue['loc'])}: {issue['msg']}" for issue in error.errors()]


def validate_override_data(data: Any) -> OverrideConfig:
    """
    Validate parsed override data.

    Raises:
        pydantic.ValidationError: If the data violates the override schema
    """
    return OverrideConfig.model_validate(data)


def load_overrides(path: Optional[str] = None) -> OverrideConfig:
    """
    Load and validate the override file.

    Args:
        path: File location (defaults to overrides/events.json)

    Returns:
        The validated configuration; empty when the file does not exist

    Raises:
        OverrideError: If the file is not valid JSON or violates the schema
    """
    file_path = Path(path or DEFAULT_OVERRIDE_PATH)

    if not file_path.exists():
        logging.debug(f"No overrides file at {file_path}")
        return OverrideConfig()

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise OverrideError(
            f"Overrides file {file_path} contains invalid JSON: {e}",
            [f"root: {e}"],
        ) from e

    try:
        overrides = validate_override_data(data)
    except PydanticValidationError as e:
        issues = format_override_issues(e)
        listing = "\n".join(f"  - {issue}" for issue in issues)
        raise OverrideError(f"Overrides file {file_path} is invalid:\n{listing}", issues) from e

    logging.info(f"Loaded {len(overrides.events)} event override(s) from {file_path}")
    return overrides


def apply_media_override(media_override: MediaOverride, fallback_id: str) -> Optional[MediaAssetSummary]:
    """
    Convert an override media descriptor into a MediaAssetSummary.

    Width and height default to 1024. The id is derived from the source URL
    so repeated runs produce the same asset id.

    Returns:
        The asset, or None for a missing URL or non-positive dimensions
    """
    if not media_override.source_url:
        return None

    width = media_override.width if media_override.width is not None else DEFAULT_OVERRIDE_DIMENSION
    height = media_override.height if media_override.height is not None else DEFAULT_OVERRIDE_DIMENSION
    if width <= 0 or height <= 0:
        return None

    return MediaAssetSummary(
        id=f"override:{media_override.source_url}" if media_override.source_url else fallback_id,
        source_url=media_override.source_url,
        width=width,
        height=height,
        provider=media_override.provider or "custom",
        asset_type=media_override.asset_type or "original",
        license=media_override.license,
        attribution=media_override.attribution,
        alt_text=media_override.alt_text,
    )


def apply_overrides(events: List[HistoricalEventRecord], overrides: OverrideConfig) -> List[HistoricalEventRecord]:
    """
    Merge overrides into enriched events.

    Suppressed events are dropped; other overridden fields replace the
    enriched values. Events without an override are returned unchanged.
    """
    if not overrides.events:
        return events

    merged: List[HistoricalEventRecord] = []
    for event in events:
        override = overrides.events.get(event.event_id)
        if override is None:
            merged.append(event)
            continue

        if override.suppress:
            logging.info(f"Suppressing event {event.event_id} by override")
            continue

        updates = {}
        if override.categories is not None:
            updates["categories"] = list(override.categories)
        if override.era is not None:
            updates["era"] = override.era
        if override.tags is not None:
            updates["tags"] = list(override.tags)
        if override.selected_media is not None:
            media = apply_media_override(override.selected_media, f"{event.event_id}:override")
            if media is not None:
                updates["related_pages"] = [
                    page.model_copy(update={"selected_media": media}) for page in event.related_pages
                ]

        merged.append(event.model_copy(update=updates))

    return merged
