"""
Rule-based event classification.

Categories come from keyword patterns over the event text and from
knowledge-graph type ids; a text may match several categories. Events that
match nothing get the single category ``surprise``.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from ..models import HistoricalEventRecord, WikidataEntitySummary

FALLBACK_CATEGORY = "surprise"

CATEGORY_BY_KEYWORD = [
    (re.compile(r"world war|wwi|world war i|world war ii|wwii|battle|war", re.IGNORECASE), "world-wars"),
    (re.compile(r"invention|invented|patent", re.IGNORECASE), "inventions"),
    (re.compile(r"discovery|scientist|physics|chemistry|astronomy", re.IGNORECASE), "science-discovery"),
    (re.compile(r"earthquake|hurricane|flood|tsunami|eruption|volcano", re.IGNORECASE), "natural-disasters"),
    (re.compile(r"civil rights|equality|suffrage", re.IGNORECASE), "civil-rights"),
    (re.compile(r"art|painting|composer|music|opera|sculpture|culture", re.IGNORECASE), "art-culture"),
    (re.compile(r"president|prime minister|election|parliament|treaty|government", re.IGNORECASE), "politics"),
    (re.compile(r"exploration|expedition|voyage|mission", re.IGNORECASE), "exploration"),
]

CATEGORY_BY_ENTITY = {
    "Q198": "world-wars",  # war
    "Q191021": "natural-disasters",  # earthquake
    "Q11446": "natural-disasters",  # volcanic eruption
    "Q11460": "natural-disasters",  # tsunami
    "Q13466005": "science-discovery",  # scientific discovery
    "Q11016": "inventions",  # invention
    "Q16521": "art-culture",  # artwork
    "Q17537576": "civil-rights",  # civil rights movement
    "Q49757": "politics",  # election
    "Q622425": "exploration",  # expedition
}

TAGS_BY_ENTITY = {
    "Q180684": "air-accident",
    "Q178561": "spaceflight",
    "Q43229": "revolution",
}

# (exclusive upper bound, era); anything later is contemporary
ERA_BOUNDARIES = [
    (-3000, "prehistory"),
    (500, "ancient"),
    (1500, "medieval"),
    (1800, "early-modern"),
    (1900, "nineteenth"),
    (2000, "twentieth"),
]


@dataclass
class ClassificationResult:
    categories: List[str] = field(default_factory=list)
    era: Optional[str] = None
    tags: List[str] = field(default_factory=list)


def _year_from_date(exact_date: Optional[str]) -> Optional[int]:
    if not exact_date:
        return None
    match = re.match(r"^(-?\d+)", exact_date)
    if not match:
        return None
    return int(match.group(1))


def determine_era(year: Optional[int] = None, exact_date: Optional[str] = None) -> Optional[str]:
    """
    Era bucket for a year, falling back to the year of an ISO date.

    Returns None when no year can be derived.
    """
    derived = year if year is not None else _year_from_date(exact_date)
    if derived is None:
        return None

    for upper_bound, era in ERA_BOUNDARIES:
        if derived < upper_bound:
            return era
    return "contemporary"


def _add_unique(target: List[str], seen: Set[str], value: str) -> None:
    if value not in seen:
        seen.add(value)
        target.append(value)


def classify_event(
    event: HistoricalEventRecord,
    primary_entity: Optional[WikidataEntitySummary] = None,
    related_entities: Iterable[WikidataEntitySummary] = (),
) -> ClassificationResult:
    """
    Derive categories, era and tags for an event.

    Args:
        event: The normalized event
        primary_entity: Entity of the first related page carrying an id
        related_entities: Entities of all related pages

    Returns:
        ClassificationResult whose categories are never empty
    """
    categories: List[str] = []
    tags: List[str] = []
    seen_categories: Set[str] = set()
    seen_tags: Set[str] = set()

    corpora = [" ".join(part for part in (event.text, event.summary) if part).lower()]
    if primary_entity is not None:
        corpora.append(f"{primary_entity.label} {primary_entity.description or ''}".lower())

    for corpus in corpora:
        for pattern, category in CATEGORY_BY_KEYWORD:
            if pattern.search(corpus):
                _add_unique(categories, seen_categories, category)

    entities = [primary_entity] if primary_entity is not None else []
    entities.extend(related_entities)

    for entity in entities:
        for type_id in entity.type_ids:
            category = CATEGORY_BY_ENTITY.get(type_id)
            if category:
                _add_unique(categories, seen_categories, category)
            tag = TAGS_BY_ENTITY.get(type_id)
            if tag:
                _add_unique(tags, seen_tags, tag)

    if not categories:
        categories.append(FALLBACK_CATEGORY)

    exact_date = primary_entity.point_in_time if primary_entity is not None else None
    if exact_date is None and event.enrichment is not None:
        exact_date = event.enrichment.exact_date

    return ClassificationResult(
        categories=categories,
        era=determine_era(event.year, exact_date),
        tags=tags,
    )
