"""Data models for Chronicler."""

from .events import (
    DocumentModel,
    MediaAssetSummary,
    RelatedPageSummary,
    EventSourceRef,
    ParticipantSummary,
    EventEnrichment,
    EventDate,
    HistoricalEventRecord,
    CachedPayload,
    DailyDigestRecord,
)
from .entities import WikidataEntitySummary, EntityRef, TimePoint, ClaimValue, narrow_claim_value
from .overrides import MediaOverride, EventOverride, OverrideConfig

__all__ = [
    "DocumentModel",
    "MediaAssetSummary",
    "RelatedPageSummary",
    "EventSourceRef",
    "ParticipantSummary",
    "EventEnrichment",
    "EventDate",
    "HistoricalEventRecord",
    "CachedPayload",
    "DailyDigestRecord",
    "WikidataEntitySummary",
    "EntityRef",
    "TimePoint",
    "ClaimValue",
    "narrow_claim_value",
    "MediaOverride",
    "EventOverride",
    "OverrideConfig",
]
