"""
Strict output schemas.

The carrier models in chronicler.models accept whatever the upstream feed
provides; these schemas describe what may be written to the store. They
validate the camelCase document form produced by ``to_document()``.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.fields import UrlString


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class MediaAssetSchema(_Schema):
    id: str = Field(..., min_length=1)
    source_url: UrlString
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    provider: Literal["wikimedia", "custom"]
    asset_type: Literal["thumbnail", "original"]
    license: Optional[str] = None
    attribution: Optional[str] = None
    alt_text: Optional[str] = None


class RelatedPageSchema(_Schema):
    page_id: int = Field(..., ge=0)
    canonical_title: str = Field(..., min_length=1)
    display_title: str = Field(..., min_length=1)
    normalized_title: str = Field(..., min_length=1)
    description: Optional[str] = None
    extract: Optional[str] = None
    wikidata_id: Optional[str] = Field(None, pattern=r"^Q\d+$")
    desktop_url: UrlString
    mobile_url: UrlString
    thumbnails: List[MediaAssetSchema] = Field(default_factory=list)
    selected_media: Optional[MediaAssetSchema] = None


class EventSourceSchema(_Schema):
    provider: Literal["wikimedia"]
    feed: Literal["onthisday"]
    raw_type: str = Field(..., min_length=1)
    captured_at: str = Field(..., min_length=1)
    source_date: str = Field(..., pattern=r"^\d{2}-\d{2}$")
    payload_cache_key: str = Field(..., min_length=1)


class ParticipantSchema(_Schema):
    wikidata_id: str = Field(..., min_length=1)
    label: str
    description: Optional[str] = None


class EnrichmentSchema(_Schema):
    primary_entity_id: Optional[str] = None
    exact_date: Optional[str] = None
    participant_ids: List[str] = Field(default_factory=list)
    participants: List[ParticipantSchema] = Field(default_factory=list)
    supporting_entity_ids: List[str] = Field(default_factory=list)


class EventDateSchema(_Schema):
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)


class EventSchema(_Schema):
    event_id: str = Field(..., pattern=r"^[0-9a-f]{32}$")
    year: Optional[int] = None
    text: str = Field(..., min_length=1)
    summary: str
    categories: List[str] = Field(..., min_length=1)
    era: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    date: EventDateSchema
    related_pages: List[RelatedPageSchema] = Field(..., min_length=1)
    source: EventSourceSchema
    created_at: str = Field(..., min_length=1)
    updated_at: str = Field(..., min_length=1)
    enrichment: Optional[EnrichmentSchema] = None


class DigestSchema(_Schema):
    digest_id: str = Field(..., min_length=1)
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    event_ids: List[str] = Field(..., min_length=1)
    created_at: str = Field(..., min_length=1)
    updated_at: str = Field(..., min_length=1)


class CachedPayloadSchema(_Schema):
    key: str = Field(..., min_length=1)
    fetched_at: str = Field(..., min_length=1)
    month: int = Field(..., ge=1, le=12)
    day: int = Field(..., ge=1, le=31)
    payload: Dict[str, Any]
