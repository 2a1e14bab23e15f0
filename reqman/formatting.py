"""
Display helpers for Reqman records.
"""

from datetime import date, datetime, time
from typing import Any, Mapping, Optional, Tuple

from .schema_loader import DatabaseSchema, FieldSchema, FieldType

EMPTY_VALUE = "—"


def format_field_label(field: FieldSchema) -> str:
    """Label for an input control, e.g. 'Due date (date) *'."""
    required_mark = " *" if field.is_required else ""
    return f"{field.display_name} ({field.type.value}){required_mark}"


def format_value(field: FieldSchema, value: Any) -> str:
    if value is None:
        return EMPTY_VALUE

    if field.type is FieldType.BOOLEAN or isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, float) and value.is_integer():
        return str(int(value))

    # Hand-edited documents may hold native TOML dates and times
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")

    return str(value)


def record_summary(schema: DatabaseSchema, record: Mapping[str, Any], index: int) -> Tuple[str, str]:
    """
    One-line list entry for a record.

    The title uses the primary key, or the first field when there is none;
    the description lists the remaining fields.

    Returns:
        Tuple of (title, description)
    """
    name_field = schema.get_field(schema.primary_key) if schema.primary_key else None
    if name_field is None:
        name_field = schema.fields[0]

    title = f"#{index + 1} {name_field.name}: {format_value(name_field, record.get(name_field.name))}"
    description = " · ".join(
        f"{field.name}={format_value(field, record.get(field.name))}"
        for field in schema.fields
        if field.name != name_field.name
    )
    return title, description or "(no additional fields)"


def details_text(schema: DatabaseSchema, record: Optional[Mapping[str, Any]]) -> str:
    if record is None:
        return "No record selected."
    return "\n".join(f"{field.name}: {format_value(field, record.get(field.name))}" for field in schema.fields)


def form_placeholder(field: FieldSchema) -> str:
    if field.type is FieldType.DATE:
        return "YYYY-MM-DD"
    if field.type is FieldType.TIME:
        return "HH:MM or HH:MM:SS"
    if field.type is FieldType.NUMBER:
        return "123"
    return ""
