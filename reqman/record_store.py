"""
Record store for Reqman databases.

Owns the life-cycle of the persisted document. Every mutation rewrites
the whole document, records and freshly embedded schema together.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .exceptions import DocumentError, OperationError
from .file_utils import PathLike, parse_document, read_text, write_document
from .metadata_codec import ensure_schema_metadata
from .schema_loader import DatabaseSchema

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


@dataclass
class LoadedDatabase:
    """A parsed document plus its normalized records."""
    path: Path
    document: Dict[str, Any] = field(default_factory=dict)
    records: List[Record] = field(default_factory=list)


def normalize_record(value: Any) -> Record:
    """Copy a table entry into a record; anything not table-shaped becomes empty."""
    if not isinstance(value, dict):
        return {}
    return dict(value)


def load_database(path: PathLike, schema: DatabaseSchema) -> LoadedDatabase:
    """
    Load a database document and normalize the records of the schema's table.

    A missing or blank file yields an empty document. Other sections of the
    document, including metadata, are kept for later writes.

    Raises:
        DocumentError: If the document cannot be read or parsed
    """
    db_path = Path(path)
    raw = read_text(db_path) or ""
    document = parse_document(raw, db_path)

    table = document.get(schema.name)
    entries = table if isinstance(table, list) else []
    records = [normalize_record(entry) for entry in entries]

    dropped = sum(1 for entry in entries if not isinstance(entry, dict))
    if dropped:
        logger.warning(f"Replaced {dropped} non-table entries in '{schema.name}' with empty records")

    document[schema.name] = records
    logger.info(f"Loaded {len(records)} records from {db_path}")
    return LoadedDatabase(path=db_path, document=document, records=records)


def save_database(path: PathLike, document: Dict[str, Any], schema: DatabaseSchema,
                  records: List[Record]) -> None:
    """
    Write records into the document, re-embed the schema and overwrite the file.

    Raises:
        DocumentError: If the document cannot be serialized or written
    """
    document[schema.name] = records
    ensure_schema_metadata(document, schema)
    write_document(path, document)
    logger.info(f"Saved {len(records)} records to {path}")


def _check_index(records: List[Record], index: Any, action: str) -> int:
    if index is None or isinstance(index, bool) or not isinstance(index, int):
        raise OperationError(f"Select a record to {action}.", index=None)
    if index < 0 or index >= len(records):
        raise OperationError(f"Select a record to {action}.", index=index)
    return index


def append_record(loaded: LoadedDatabase, schema: DatabaseSchema, record: Record) -> int:
    """Append a record, save, and return its index."""
    loaded.records.append(record)
    try:
        save_database(loaded.path, loaded.document, schema, loaded.records)
    except DocumentError:
        loaded.records.pop()
        raise
    return len(loaded.records) - 1


def replace_record(loaded: LoadedDatabase, schema: DatabaseSchema, index: Any, record: Record) -> Record:
    """
    Replace the record at index, save, and return the previous record.

    Raises:
        OperationError: If index does not select a record
    """
    position = _check_index(loaded.records, index, "edit")
    previous = loaded.records[position]
    loaded.records[position] = record
    try:
        save_database(loaded.path, loaded.document, schema, loaded.records)
    except DocumentError:
        loaded.records[position] = previous
        raise
    return previous


def delete_record(loaded: LoadedDatabase, schema: DatabaseSchema, index: Any) -> Record:
    """
    Remove the record at index, save, and return it.

    Raises:
        OperationError: If index does not select a record
    """
    position = _check_index(loaded.records, index, "delete")
    removed = loaded.records.pop(position)
    try:
        save_database(loaded.path, loaded.document, schema, loaded.records)
    except DocumentError:
        loaded.records.insert(position, removed)
        raise
    return removed
