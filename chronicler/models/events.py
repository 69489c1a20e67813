"""
Event models for Chronicler.

This module defines the records produced by the ingestion pipeline. Field
names are snake_case in Python and camelCase in stored documents.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DocumentModel(BaseModel):
    """Base for models that are persisted as camelCase documents."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored document shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class MediaAssetSummary(DocumentModel):
    """
    An image that can illustrate an event.
    """

    id: str = Field(..., description="Stable asset identifier")
    source_url: str = Field(..., description="Direct URL of the image")
    width: int
    height: int
    provider: Literal["wikimedia", "custom"] = "wikimedia"
    asset_type: Literal["thumbnail", "original"] = "thumbnail"
    license: Optional[str] = None
    attribution: Optional[str] = None
    alt_text: Optional[str] = None

    def meets(self, min_width: int, min_height: int) -> bool:
        """True when the asset is at least min_width x min_height."""
        return self.width >= min_width and self.height >= min_height


class RelatedPageSummary(DocumentModel):
    """
    One encyclopedia page linked from an event.
    """

    page_id: int
    canonical_title: str
    display_title: str
    normalized_title: str
    description: Optional[str] = None
    extract: Optional[str] = None
    wikidata_id: Optional[str] = None
    desktop_url: str
    mobile_url: str
    thumbnails: List[MediaAssetSummary] = Field(default_factory=list)
    selected_media: Optional[MediaAssetSummary] = None


class EventSourceRef(DocumentModel):
    """Provenance of a normalized event."""

    provider: Literal["wikimedia"] = "wikimedia"
    feed: Literal["onthisday"] = "onthisday"
    raw_type: str
    captured_at: str
    source_date: str
    payload_cache_key: str


class ParticipantSummary(DocumentModel):
    wikidata_id: str
    label: str
    description: Optional[str] = None


class EventEnrichment(DocumentModel):
    """
    Knowledge-graph metadata attached to an event by the orchestrator.
    """

    primary_entity_id: Optional[str] = None
    exact_date: Optional[str] = None
    participant_ids: List[str] = Field(default_factory=list)
    participants: List[ParticipantSummary] = Field(default_factory=list)
    supporting_entity_ids: List[str] = Field(default_factory=list)


class EventDate(DocumentModel):
    month: int
    day: int


class HistoricalEventRecord(DocumentModel):
    """
    One historical event for a calendar day.

    The event_id is derived from the upstream content, so ingesting the same
    day twice upserts the same documents.
    """

    event_id: str = Field(..., description="Truncated SHA-256 of text, year, date and page titles")
    year: Optional[int] = None
    text: str
    summary: str
    categories: List[str] = Field(default_factory=list)
    era: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    date: EventDate
    related_pages: List[RelatedPageSummary] = Field(default_factory=list)
    source: EventSourceRef
    created_at: str
    updated_at: str
    enrichment: Optional[EventEnrichment] = None


class CachedPayload(DocumentModel):
    """Raw feed response kept for replay and debugging."""

    key: str
    fetched_at: str
    month: int
    day: int
    payload: Dict[str, Any] = Field(default_factory=dict)


class DailyDigestRecord(DocumentModel):
    """The list of events published for one date."""

    digest_id: str
    date: str
    event_ids: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
