"""
Output validation.

Nothing is written to the store until every event and the digest pass the
strict schemas. Problems are collected across all records and reported in
one ValidationError.
"""

import logging
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from ..models import CachedPayload, DailyDigestRecord, HistoricalEventRecord
from .schemas import CachedPayloadSchema, DigestSchema, EventSchema


def _schema_issues(schema: type, document: Dict) -> List[str]:
    try:
        schema.model_validate(document)
    except PydanticValidationError as e:
        issues = []
        for error in e.errors():
            path = ".".join(str(part) for part in error["loc"]) or "root"
            issues.append(f"{path}: {error['msg']}")
        return issues
    return []


def collect_event_issues(events: List[HistoricalEventRecord]) -> List[str]:
    """
    Check every event against EventSchema.

    Returns:
        One ``Event <id>: path: message; ...`` entry per failing event
    """
    problems = []
    seen = set()

    for index, event in enumerate(events):
        event_id = event.event_id or f"#{index}"
        issues = _schema_issues(EventSchema, event.to_document())
        if event.event_id in seen:
            issues.append("eventId: duplicate event id in batch")
        seen.add(event.event_id)
        if issues:
            problems.append(f"Event {event_id}: {'; '.join(issues)}")

    return problems


def validate_events(events: List[HistoricalEventRecord]) -> None:
    """
    Validate enriched events.

    Raises:
        ValidationError: Listing every failing event and its violations
    """
    problems = collect_event_issues(events)
    if problems:
        raise ValidationError(f"Event validation failed: {' | '.join(problems)}", problems)
    logging.debug(f"Validated {len(events)} event(s)")


def collect_digest_issues(digest: DailyDigestRecord, events: List[HistoricalEventRecord]) -> List[str]:
    issues = _schema_issues(DigestSchema, digest.to_document())

    known = {event.event_id for event in events}
    missing = [event_id for event_id in digest.event_ids if event_id not in known]
    if missing:
        issues.append(f"eventIds: references events missing from the batch: {', '.join(missing)}")

    if not issues:
        return []
    return [f"Digest {digest.digest_id or '<unknown>'}: {'; '.join(issues)}"]


def validate_digest(digest: DailyDigestRecord, events: List[HistoricalEventRecord]) -> None:
    """
    Validate the digest and its references.

    Args:
        digest: Digest about to be written
        events: Events written in the same batch

    Raises:
        ValidationError: If the digest violates its schema or references an
            event that is not in ``events``
    """
    problems = collect_digest_issues(digest, events)
    if problems:
        raise ValidationError(f"Digest validation failed: {' | '.join(problems)}", problems)


def validate_payload_cache(payload: CachedPayload) -> None:
    issues = _schema_issues(CachedPayloadSchema, payload.to_document())
    if issues:
        problems = [f"Payload {payload.key}: {'; '.join(issues)}"]
        raise ValidationError(f"Payload validation failed: {problems[0]}", problems)


def assert_valid_payload(
    events: List[HistoricalEventRecord],
    digest: Optional[DailyDigestRecord] = None,
    payload: Optional[CachedPayload] = None,
) -> None:
    """
    Run every check before a write and report all problems at once.

    Raises:
        ValidationError: Aggregating event, digest and payload problems
    """
    problems = collect_event_issues(events)
    if digest is not None:
        problems.extend(collect_digest_issues(digest, events))
    if payload is not None:
        issues = _schema_issues(CachedPayloadSchema, payload.to_document())
        if issues:
            problems.append(f"Payload {payload.key}: {'; '.join(issues)}")

    if problems:
        raise ValidationError(f"Validation failed: {' | '.join(problems)}", problems)

    logging.info(f"Validated {len(events)} event(s)" + (f" and digest {digest.digest_id}" if digest else ""))
