"""
Store bootstrap.

Resolves the service-account credential and project id given on the command
line or in the environment and opens the matching document store.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..errors import StoreError
from .manager import DocumentStore


def resolve_service_account(path: Optional[str] = None, json_text: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the service-account credential.

    Args:
        path: Path to a credential JSON file
        json_text: Inline credential JSON; wins over ``path``

    Returns:
        The parsed credential

    Raises:
        StoreError: If neither source is given or the credential can't be read
    """
    if json_text:
        try:
            credential = json.loads(json_text)
        except json.JSONDecodeError as e:
            raise StoreError(f"Inline service account JSON is invalid: {e}") from e
        source = "inline JSON"
    elif path:
        credential_path = Path(path)
        if not credential_path.exists():
            raise StoreError(f"Service account file not found: {credential_path}")
        try:
            with open(credential_path, 'r', encoding='utf-8') as f:
                credential = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Could not read service account file {credential_path}: {e}") from e
        source = str(credential_path)
    else:
        raise StoreError(
            "No service account credential provided. Use --serviceAccount, --serviceAccountJson "
            "or set STORE_SERVICE_ACCOUNT_PATH / STORE_SERVICE_ACCOUNT_JSON."
        )

    if not isinstance(credential, dict):
        raise StoreError(f"Service account credential from {source} must be a JSON object")

    logging.debug(f"Loaded service account credential from {source}")
    return credential


def resolve_project_id(project_id: Optional[str], credential: Dict[str, Any]) -> str:
    resolved = project_id or credential.get("project_id")
    if not resolved:
        raise StoreError("No project id provided and the credential has no project_id")
    return resolved


def resolve_database_path(credential: Dict[str, Any], project_id: str, database_dir: str = "data") -> str:
    """The credential's database_path, else <database_dir>/<project_id>.duckdb."""
    if credential.get("database_path"):
        return credential["database_path"]
    return str(Path(database_dir) / f"{project_id}.duckdb")


def bootstrap_store(
    service_account_path: Optional[str] = None,
    service_account_json: Optional[str] = None,
    project_id: Optional[str] = None,
    database_dir: str = "data",
) -> DocumentStore:
    """
    Build the document store for a run.

    The returned store is not connected yet; use it as a context manager.

    Raises:
        StoreError: On any credential or project id problem
    """
    credential = resolve_service_account(service_account_path, service_account_json)
    resolved_project = resolve_project_id(project_id, credential)
    db_path = resolve_database_path(credential, resolved_project, database_dir)

    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    logging.info(f"Using document store {db_path} for project {resolved_project}")
    return DocumentStore(db_path)
