"""Strict output schemas and the pre-write validation gate."""

from .schemas import (
    CachedPayloadSchema,
    DigestSchema,
    EventSchema,
    MediaAssetSchema,
    RelatedPageSchema,
)
from .validator import (
    assert_valid_payload,
    validate_digest,
    validate_events,
    validate_payload_cache,
)

__all__ = [
    "CachedPayloadSchema",
    "DigestSchema",
    "EventSchema",
    "MediaAssetSchema",
    "RelatedPageSchema",
    "assert_valid_payload",
    "validate_digest",
    "validate_events",
    "validate_payload_cache",
]
