"""
Knowledge-graph entity models for Chronicler.

Claim values returned by the entity API come in several shapes. They are
narrowed once, by narrow_claim_value, into the ClaimValue union below.
"""

from dataclasses import dataclass
from typing import Any, List, Optional, Union

from pydantic import Field

from .events import DocumentModel


class WikidataEntitySummary(DocumentModel):
    """
    The parts of a knowledge-graph entity used for classification.
    """

    id: str
    label: str
    description: Optional[str] = None
    instance_of_ids: List[str] = Field(default_factory=list)
    subclass_of_ids: List[str] = Field(default_factory=list)
    genre_ids: List[str] = Field(default_factory=list)
    participant_ids: List[str] = Field(default_factory=list)
    point_in_time: Optional[str] = Field(None, description="ISO date (YYYY-MM-DD)")

    @property
    def type_ids(self) -> List[str]:
        """Instance-of, subclass-of and genre ids, in that order."""
        return [*self.instance_of_ids, *self.subclass_of_ids, *self.genre_ids]


@dataclass(frozen=True)
class EntityRef:
    """A claim pointing at another entity."""
    id: str


@dataclass(frozen=True)
class TimePoint:
    """A claim holding a time value such as ``+1969-07-20T00:00:00Z``."""
    time: str


ClaimValue = Union[EntityRef, TimePoint]


def narrow_claim_value(raw: Any) -> Optional[ClaimValue]:
    """
    Convert a raw ``mainsnak.datavalue.value`` into a ClaimValue.

    Entity values carry either ``id`` or ``numeric-id``; time values carry
    ``time``. Anything else yields None.
    """
    if not isinstance(raw, dict):
        return None

    entity_id = raw.get("id")
    if isinstance(entity_id, str) and entity_id:
        return EntityRef(entity_id)

    numeric_id = raw.get("numeric-id")
    if isinstance(numeric_id, int) and not isinstance(numeric_id, bool) and numeric_id:
        return EntityRef(f"Q{numeric_id}")

    time = raw.get("time")
    if isinstance(time, str) and time:
        return TimePoint(time)

    return None
