"""
Embedded schema metadata for Reqman database documents.

A database document carries its own schema in a reserved table, so it
can be reopened without the original schema file. The schema itself is
stored as an opaque JSON string; the document format only ever sees a
string value.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import DocumentError, SchemaError
from .file_utils import PathLike, parse_document, read_text, write_document
from .schema_loader import METADATA_TABLE, DatabaseSchema, parse_schema

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 1
SCHEMA_VERSION_KEY = "schema_version"
SCHEMA_JSON_KEY = "schema_json"


def encode_schema(schema: DatabaseSchema) -> str:
    """Encode a schema as pretty-printed JSON."""
    return json.dumps(schema.to_dict(), indent=2, ensure_ascii=False)


def decode_schema(text: str, path: Optional[PathLike] = None) -> DatabaseSchema:
    """
    Decode a schema previously produced by encode_schema().

    Raises:
        DocumentError: If the text is not valid JSON
        SchemaError: If the JSON does not describe a valid schema
    """
    try:
        raw = json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise DocumentError(f"Embedded schema in '{path}' is not valid JSON: {e}", path=path,
                            original_error=e) from e
    return parse_schema(raw)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def ensure_schema_metadata(document: Dict[str, Any], schema: DatabaseSchema) -> None:
    """
    Write the schema version and encoded schema into the document's
    metadata table, keeping any other keys already stored there.

    Mutates the document in place.
    """
    current = document.get(METADATA_TABLE)
    metadata = dict(current) if isinstance(current, dict) else {}
    metadata[SCHEMA_VERSION_KEY] = CURRENT_SCHEMA_VERSION
    metadata[SCHEMA_JSON_KEY] = encode_schema(schema)
    document[METADATA_TABLE] = metadata


def create_document(schema: DatabaseSchema) -> Dict[str, Any]:
    """Build a fresh document with embedded metadata and an empty table."""
    document: Dict[str, Any] = {}
    ensure_schema_metadata(document, schema)
    document[schema.name] = []
    return document


def ensure_database_file(path: PathLike, schema: DatabaseSchema) -> None:
    """
    Create the database file if it is missing or blank; otherwise re-embed
    the given schema into the existing document and rewrite it.

    Existing records are left as they are, even when they no longer match
    the new schema.

    Raises:
        DocumentError: If an existing document cannot be parsed or written
    """
    db_path = Path(path)
    raw = read_text(db_path)

    if raw is None or not raw.strip():
        write_document(db_path, create_document(schema))
        logger.info(f"Created database '{db_path}' for table '{schema.name}'")
        return

    document = parse_document(raw, db_path)
    ensure_schema_metadata(document, schema)
    write_document(db_path, document)
    logger.info(f"Updated embedded schema in '{db_path}'")


def load_schema_from_database(path: PathLike) -> DatabaseSchema:
    """
    Extract and validate the schema embedded in a database document.

    Raises:
        DocumentError: If the document is empty, unparseable, lacks metadata,
            or carries an unsupported schema version
        SchemaError: If the embedded schema is not a valid schema
    """
    db_path = Path(path)
    raw = read_text(db_path)
    if raw is None:
        raise DocumentError(f"Database file not found: {db_path}", path=db_path)

    if not raw.strip():
        raise DocumentError(
            f"Database '{db_path}' is empty and does not include an embedded schema. "
            f"Provide a schema to create it.",
            path=db_path,
        )

    document = parse_document(raw, db_path)

    metadata = document.get(METADATA_TABLE)
    if not isinstance(metadata, dict):
        raise DocumentError(
            f"Database '{db_path}' does not include an embedded schema. "
            f"Provide a schema to create or update it.",
            path=db_path,
        )

    version = metadata.get(SCHEMA_VERSION_KEY)
    if version is not None and not _is_number(version):
        raise DocumentError(f"Database '{db_path}' has invalid embedded schema version metadata.",
                            path=db_path)
    if version is not None and version != CURRENT_SCHEMA_VERSION:
        raise DocumentError(f"Database '{db_path}' has unsupported embedded schema_version={version}.",
                            path=db_path)

    schema_json = metadata.get(SCHEMA_JSON_KEY)
    if not isinstance(schema_json, str) or not schema_json.strip():
        raise DocumentError(
            f"Database '{db_path}' does not include an embedded schema. "
            f"Provide a schema to create or update it.",
            path=db_path,
        )

    try:
        schema = decode_schema(schema_json, db_path)
    except SchemaError as e:
        logger.error(f"Embedded schema in {db_path} is invalid: {e}")
        raise

    logger.info(f"Loaded embedded schema '{schema.name}' from {db_path}")
    return schema
