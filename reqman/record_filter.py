"""
Filter engine for in-memory Reqman records.

Query language:
    ""              every record
    "field:text"    records whose field contains text (case-insensitive)
    "text"          records where any declared field contains text
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from .formatting import format_value
from .schema_loader import DatabaseSchema, FieldSchema

logger = logging.getLogger(__name__)

FIELD_DELIMITER = ":"


def _contains(field: FieldSchema, record: Mapping[str, Any], needle: str) -> bool:
    value = record.get(field.name)
    if value is None:
        return False
    return needle in format_value(field, value).lower()


def _find_field(schema: DatabaseSchema, name: str) -> Optional[FieldSchema]:
    for field in schema.fields:
        if field.name.lower() == name:
            return field
    return None


def filter_records(records: Sequence[Mapping[str, Any]], schema: DatabaseSchema, query: str) -> List[int]:
    """
    Evaluate a filter query.

    Args:
        records: In-memory records
        schema: Schema the records belong to
        query: Filter text

    Returns:
        Indices of matching records, in their original order
    """
    trimmed = (query or "").strip()
    if not trimmed:
        return list(range(len(records)))

    lowered = trimmed.lower()
    delimiter = lowered.find(FIELD_DELIMITER)

    if delimiter > 0:
        field_name = lowered[:delimiter].strip()
        needle = lowered[delimiter + 1:].strip()
        if not needle:
            return list(range(len(records)))

        field = _find_field(schema, field_name)
        if field is None:
            logger.debug(f"Filter names unknown field '{field_name}'")
            return []

        return [index for index, record in enumerate(records) if _contains(field, record, needle)]

    return [
        index for index, record in enumerate(records)
        if any(_contains(field, record, lowered) for field in schema.fields)
    ]
