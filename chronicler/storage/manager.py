"""
Document store for Chronicler.

Documents are JSON objects kept in a DuckDB file, one table per collection.
All writes of an ingestion run go through a WriteBatch committed in a single
transaction.
"""

import duckdb
import json
import logging
import re
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..errors import StoreError

COLLECTION_NAME_PATTERN = re.compile(r"^[-_A-Za-z0-9]+$")


def safe_collection_name(name: str) -> str:
    """
    Validate a collection name and return it quoted for use as a table name.

    Raises:
        StoreError: If the name contains anything besides letters, digits,
            dashes and underscores
    """
    if not name or not COLLECTION_NAME_PATTERN.match(name):
        raise StoreError(f"Invalid collection name: {name!r}")
    return f'"{name}"'


def build_document_id(value: str) -> str:
    """
    Normalize a document id.

    Slashes would denote sub-collections in a hierarchical store, so they are
    replaced to keep ids flat.
    """
    doc_id = (value or "").strip().replace("/", "_")
    if not doc_id:
        raise StoreError("Document id must not be empty")
    return doc_id


def merge_documents(existing: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge maps; values from ``update`` win, lists are replaced."""
    merged = dict(existing)
    for key, value in update.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_documents(merged[key], value)
        else:
            merged[key] = value
    return merged


class WriteBatch:
    """
    Pending upserts, applied atomically by commit().

    Several writes to the same document within one batch are combined in
    order before anything reaches the database.
    """

    def __init__(self, store: "DocumentStore"):
        self.store = store
        self._writes: "OrderedDict[Tuple[str, str], Tuple[Dict[str, Any], bool]]" = OrderedDict()
        self.committed = False

    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = True) -> "WriteBatch":
        """
        Queue an upsert.

        Args:
            collection: Target collection
            doc_id: Document id
            data: Document body
            merge: Merge into the stored document instead of replacing it
        """
        safe_collection_name(collection)
        key = (collection, build_document_id(doc_id))

        pending = self._writes.get(key)
        if pending is None:
            self._writes[key] = (data, merge)
        elif merge:
            self._writes[key] = (merge_documents(pending[0], data), pending[1])
        else:
            self._writes[key] = (data, False)
        return self

    def __len__(self) -> int:
        return len(self._writes)

    def commit(self) -> int:
        """
        Apply every queued write in one transaction.

        Returns:
            Number of documents written

        Raises:
            StoreError: If any write fails; nothing is persisted in that case
        """
        if self.committed:
            raise StoreError("Write batch already committed")

        connection = self.store.require_connection()
        written = 0

        connection.begin()
        try:
            for (collection, doc_id), (data, merge) in self._writes.items():
                self.store.ensure_collection(collection)
                if merge:
                    existing = self.store.get_document(collection, doc_id)
                    if existing is not None:
                        data = merge_documents(existing, data)
                self.store.upsert_document(collection, doc_id, data)
                written += 1
            connection.commit()
        except Exception as e:
            connection.rollback()
            raise StoreError(f"Batch commit failed after {written} of {len(self._writes)} write(s): {e}") from e

        self.committed = True
        logging.info(f"Committed batch of {written} document(s)")
        return written


class DocumentStore:
    """
    Manages the DuckDB file holding the document collections.
    """

    def __init__(self, db_path: str = "chronicler.duckdb"):
        """
        Initialize the store.

        Args:
            db_path: Path to the DuckDB database file
        """
        self.db_path = db_path
        self.connection = None

    def connect(self):
        """Establish connection to the database."""
        self.connection = duckdb.connect(self.db_path)

    def disconnect(self):
        """Close the database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    def require_connection(self):
        if not self.connection:
            raise RuntimeError("Database connection not established")
        return self.connection

    def ensure_collection(self, collection: str) -> None:
        """Create the table backing a collection if it doesn't exist."""
        table = safe_collection_name(collection)
        self.require_connection().execute(f"""
            CREATE TABLE IF NOT EXISTS {table} (
                doc_id VARCHAR PRIMARY KEY,
                data VARCHAR NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def upsert_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        table = safe_collection_name(collection)
        self.require_connection().execute(f"""
            INSERT INTO {table} (doc_id, data, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT (doc_id) DO UPDATE SET data = excluded.data, updated_at = excluded.updated_at
        """, [doc_id, json.dumps(data, sort_keys=True), datetime.now()])

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch one document.

        Returns:
            The document body, or None if the collection or document is missing
        """
        table = safe_collection_name(collection)
        try:
            row = self.require_connection().execute(
                f"SELECT data FROM {table} WHERE doc_id = ?", [doc_id]
            ).fetchone()
        except duckdb.CatalogException:
            return None
        return json.loads(row[0]) if row else None

    def list_document_ids(self, collection: str) -> List[str]:
        table = safe_collection_name(collection)
        try:
            rows = self.require_connection().execute(
                f"SELECT doc_id FROM {table} ORDER BY doc_id"
            ).fetchall()
        except duckdb.CatalogException:
            return []
        return [row[0] for row in rows]

    def batch(self) -> WriteBatch:
        """Start a new write batch."""
        return WriteBatch(self)
