"""DuckDB-backed document store and its bootstrap."""

from .bootstrap import bootstrap_store, resolve_project_id, resolve_service_account
from .manager import DocumentStore, WriteBatch, build_document_id, merge_documents, safe_collection_name

__all__ = [
    "DocumentStore",
    "WriteBatch",
    "bootstrap_store",
    "build_document_id",
    "merge_documents",
    "resolve_project_id",
    "resolve_service_account",
    "safe_collection_name",
]
