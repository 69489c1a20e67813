"""
Manual override models for Chronicler.

These models are the schema of the override file
(``{"events": {"<eventId>": {...}}}``). Unknown keys are rejected so that
typos in a hand-edited file are reported instead of ignored.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .fields import UrlString


class _OverrideModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class MediaOverride(_OverrideModel):
    """An image forced onto an event."""

    source_url: UrlString
    width: Optional[int] = Field(None, gt=0)
    height: Optional[int] = Field(None, gt=0)
    license: Optional[str] = None
    attribution: Optional[str] = None
    alt_text: Optional[str] = None
    provider: Optional[Literal["wikimedia", "custom"]] = None
    asset_type: Optional[Literal["thumbnail", "original"]] = None


class EventOverride(_OverrideModel):
    """Fields replacing the automated enrichment of one event."""

    categories: Optional[List[str]] = None
    era: Optional[str] = None
    tags: Optional[List[str]] = None
    selected_media: Optional[MediaOverride] = None
    suppress: Optional[bool] = None


class OverrideConfig(_OverrideModel):
    events: Dict[str, EventOverride] = Field(default_factory=dict)
