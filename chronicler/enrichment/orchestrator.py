"""
Event enrichment.

Resolves knowledge-graph entities for a batch of events (pages, then the
participants of those entities), classifies each event, picks its media and
finally merges manual overrides.
"""

from typing import Dict, Iterable, List, Optional

from ..clients.wikidata import WikidataClient
from ..models import (
    EventEnrichment,
    HistoricalEventRecord,
    MediaAssetSummary,
    OverrideConfig,
    ParticipantSummary,
    RelatedPageSummary,
    WikidataEntitySummary,
)
from ..observability import EventLog, get_event_log
from .classification import classify_event
from .media import MediaResolver, largest_known_asset
from .overrides import apply_overrides


def collect_page_entity_ids(pages: Iterable[RelatedPageSummary]) -> List[str]:
    ids: List[str] = []
    for page in pages:
        if page.wikidata_id and page.wikidata_id not in ids:
            ids.append(page.wikidata_id)
    return ids


def pick_primary_entity_id(event: HistoricalEventRecord) -> Optional[str]:
    """Entity id of the first related page that has one."""
    for page in event.related_pages:
        if page.wikidata_id:
            return page.wikidata_id
    return None


def collect_related_entities(
    event: HistoricalEventRecord,
    entity_map: Dict[str, WikidataEntitySummary],
) -> List[WikidataEntitySummary]:
    return [
        entity_map[page.wikidata_id]
        for page in event.related_pages
        if page.wikidata_id and page.wikidata_id in entity_map
    ]


def build_event_enrichment(
    primary_entity_id: Optional[str],
    primary_entity: Optional[WikidataEntitySummary],
    participant_entities: Dict[str, WikidataEntitySummary],
) -> Optional[EventEnrichment]:
    """
    Build the enrichment block from the primary entity.

    Returns:
        None when the event has no resolved primary entity
    """
    if not primary_entity_id or primary_entity is None:
        return None

    participants = [
        ParticipantSummary(
            wikidata_id=entity.id,
            label=entity.label,
            description=entity.description,
        )
        for entity in (participant_entities.get(pid) for pid in primary_entity.participant_ids)
        if entity is not None
    ]

    supporting: List[str] = []
    for type_id in primary_entity.type_ids:
        if type_id not in supporting:
            supporting.append(type_id)

    return EventEnrichment(
        primary_entity_id=primary_entity_id,
        exact_date=primary_entity.point_in_time,
        participant_ids=list(primary_entity.participant_ids),
        participants=participants,
        supporting_entity_ids=supporting,
    )


class EventEnricher:
    """
    Composes entity resolution, classification and media resolution.
    """

    def __init__(
        self,
        wikidata: WikidataClient,
        media: MediaResolver,
        overrides: Optional[OverrideConfig] = None,
        enable_enrichment: bool = True,
        log: Optional[EventLog] = None,
    ):
        self.wikidata = wikidata
        self.media = media
        self.overrides = overrides or OverrideConfig()
        self.enable_enrichment = enable_enrichment
        self.log = log or get_event_log("enrichment")

    async def resolve_entities(
        self, events: List[HistoricalEventRecord]
    ) -> "tuple[Dict[str, WikidataEntitySummary], Dict[str, WikidataEntitySummary]]":
        """
        Two-hop entity resolution.

        Returns:
            (entities referenced by pages, participants of those entities)
        """
        page_entity_ids: List[str] = []
        for event in events:
            for entity_id in collect_page_entity_ids(event.related_pages):
                if entity_id not in page_entity_ids:
                    page_entity_ids.append(entity_id)

        entity_map = await self.wikidata.fetch_entities(page_entity_ids)

        participant_ids: List[str] = []
        for entity in entity_map.values():
            for participant_id in entity.participant_ids:
                if participant_id not in participant_ids:
                    participant_ids.append(participant_id)

        participant_map = await self.wikidata.fetch_entities(participant_ids)
        self.log.info("entities-resolved", pages=len(entity_map), participants=len(participant_map))
        return entity_map, participant_map

    async def enrich_event(
        self,
        event: HistoricalEventRecord,
        entity_map: Dict[str, WikidataEntitySummary],
        participant_map: Dict[str, WikidataEntitySummary],
    ) -> HistoricalEventRecord:
        """
        Enrich a single event with already-resolved entities.

        A media lookup failure only costs the searched image; the enrichment
        block, the entity-based classification and the largest embedded
        image are kept.
        """
        primary_entity_id = pick_primary_entity_id(event)
        primary_entity = entity_map.get(primary_entity_id) if primary_entity_id else None

        enrichment = build_event_enrichment(primary_entity_id, primary_entity, participant_map)
        classification = classify_event(event, primary_entity, collect_related_entities(event, entity_map))

        try:
            selected_media: Optional[MediaAssetSummary] = await self.media.ensure_media_for_event(
                event.related_pages
            )
        except Exception as e:
            self.log.warning("media-resolution-failed", event=event.event_id, error=f"{type(e).__name__}: {e}")
            selected_media = None
        if selected_media is None:
            selected_media = largest_known_asset(event.related_pages)

        related_pages = [
            page.model_copy(update={"selected_media": page.selected_media or selected_media})
            for page in event.related_pages
        ]

        return event.model_copy(update={
            "categories": classification.categories,
            "era": classification.era or event.era,
            "tags": classification.tags,
            "enrichment": enrichment or event.enrichment,
            "related_pages": related_pages,
        })

    def _classify_only(
        self,
        event: HistoricalEventRecord,
        entity_map: Dict[str, WikidataEntitySummary],
    ) -> HistoricalEventRecord:
        primary_entity_id = pick_primary_entity_id(event)
        primary_entity = entity_map.get(primary_entity_id) if primary_entity_id else None
        classification = classify_event(event, primary_entity, collect_related_entities(event, entity_map))
        return event.model_copy(update={
            "categories": classification.categories,
            "era": classification.era or event.era,
            "tags": classification.tags,
        })

    async def enrich_events(self, events: List[HistoricalEventRecord]) -> List[HistoricalEventRecord]:
        """
        Enrich a batch of normalized events.

        A failure while enriching one event is logged and that event keeps
        its classification only; the batch carries on. Overrides are merged
        last and the media cache is flushed once at the end.
        """
        if not self.enable_enrichment or not events:
            return apply_overrides(events, self.overrides)

        try:
            entity_map, participant_map = await self.resolve_entities(events)
        except Exception as e:
            self.log.warning("entity-resolution-failed", error=f"{type(e).__name__}: {e}")
            entity_map, participant_map = {}, {}

        enriched: List[HistoricalEventRecord] = []
        try:
            for i, event in enumerate(events, 1):
                self.log.debug("enriching-event", event=event.event_id, index=i, total=len(events))
                try:
                    enriched.append(await self.enrich_event(event, entity_map, participant_map))
                except Exception as e:
                    self.log.warning("event-enrichment-failed", event=event.event_id, error=str(e))
                    enriched.append(self._classify_only(event, entity_map))
        finally:
            self.media.flush()

        merged = apply_overrides(enriched, self.overrides)
        self.log.info("events-enriched", events=len(events), kept=len(merged))
        return merged
