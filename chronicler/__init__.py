"""
Chronicler: daily "On This Day" ingestion.

Fetches the selected historical events for a calendar day, enriches them with
knowledge-graph metadata and media, validates them and stores them.
"""

__version__ = "0.1.0"
__author__ = "Chronicler Project"

# Import main components
from .config import ConfigManager, get_config
from .errors import (
    ChroniclerError,
    FeedError,
    OverrideError,
    RetryExhaustedError,
    StoreError,
    ValidationError,
)
from .models import DailyDigestRecord, HistoricalEventRecord, OverrideConfig
from .enrichment import EventEnricher, MediaResolver
from .storage import DocumentStore
from .pipeline import IngestOptions, IngestionResult, WritePlan, run_ingestion

__all__ = [
    "ConfigManager",
    "get_config",
    "ChroniclerError",
    "FeedError",
    "OverrideError",
    "RetryExhaustedError",
    "StoreError",
    "ValidationError",
    "DailyDigestRecord",
    "HistoricalEventRecord",
    "OverrideConfig",
    "EventEnricher",
    "MediaResolver",
    "DocumentStore",
    "IngestOptions",
    "IngestionResult",
    "WritePlan",
    "run_ingestion",
]
