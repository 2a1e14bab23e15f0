"""
Schema loader for the Reqman record store.
Turns untrusted schema descriptions into validated, immutable schema models.
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import SchemaError

logger = logging.getLogger(__name__)

# Reserved table holding the embedded schema inside every database document
METADATA_TABLE = "__reqman"

DEFAULT_TABLE_NAME = "records"


class FieldType(str, Enum):
    """Closed set of supported field types."""
    NUMBER = "number"
    TEXT = "text"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    CHOICE = "choice"


SUPPORTED_FIELD_TYPES = {field_type.value for field_type in FieldType}


class FieldSchema(BaseModel):
    """A single declared field of a record."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: FieldType
    label: Optional[str] = None
    required: Optional[bool] = None
    options: Optional[Tuple[str, ...]] = None

    @model_validator(mode='after')
    def _check_options(self) -> 'FieldSchema':
        if self.type is FieldType.CHOICE:
            if not self.options:
                raise ValueError(f"Schema field '{self.name}' requires a non-empty options list.")
            seen = set()
            for index, option in enumerate(self.options):
                if not option:
                    raise ValueError(f"Schema field '{self.name}' has empty option at index {index}.")
                if option in seen:
                    raise ValueError(f"Schema field '{self.name}' has duplicate option '{option}'.")
                seen.add(option)
        elif self.options is not None:
            raise ValueError(f"Schema field '{self.name}' has options but is not of type 'choice'.")
        return self

    @property
    def is_required(self) -> bool:
        return bool(self.required)

    @property
    def display_name(self) -> str:
        return self.label if self.label is not None else self.name


class DatabaseSchema(BaseModel):
    """
    Validated description of a record table.

    Instances are immutable; build them with parse_schema() so that raw
    input is trimmed and checked before the model invariants run.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = DEFAULT_TABLE_NAME
    fields: Tuple[FieldSchema, ...]
    primary_key: Optional[str] = Field(default=None, alias='primaryKey')
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def _check_name(cls, value: str) -> str:
        if value == METADATA_TABLE:
            raise ValueError(f"Schema name '{METADATA_TABLE}' is reserved for Reqman metadata.")
        return value

    @field_validator('fields')
    @classmethod
    def _check_fields_not_empty(cls, value: Tuple[FieldSchema, ...]) -> Tuple[FieldSchema, ...]:
        if len(value) == 0:
            raise ValueError("Schema 'fields' must include at least one field.")
        return value

    @model_validator(mode='after')
    def _check_references(self) -> 'DatabaseSchema':
        names = [field.name for field in self.fields]
        if self.primary_key and self.primary_key not in names:
            raise ValueError(f"Schema primaryKey '{self.primary_key}' is not defined in fields.")
        seen = set()
        for name in names:
            if name in seen:
                raise ValueError(f"Schema contains duplicate field name '{name}'.")
            seen.add(name)
        return self

    @property
    def field_names(self) -> List[str]:
        return [field.name for field in self.fields]

    def get_field(self, name: str) -> Optional[FieldSchema]:
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Canonical JSON-ready mapping with absent attributes omitted."""
        return self.model_dump(mode='json', by_alias=True, exclude_none=True)


def _schema_error_from_validation(exc: ValidationError, field_name: Optional[str] = None) -> SchemaError:
    """Convert the first pydantic error into a SchemaError with a readable message."""
    first = exc.errors()[0]
    cause = first.get('ctx', {}).get('error')
    if cause is not None:
        message = str(cause)
    else:
        location = '.'.join(str(part) for part in first.get('loc', ()))
        message = f"Schema {location}: {first.get('msg')}"
    return SchemaError(message, field_name=field_name)


def _trimmed(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) else None


def _parse_options(field_name: str, raw_options: Any) -> Optional[Tuple[str, ...]]:
    if raw_options is None:
        return None
    if not isinstance(raw_options, list):
        raise SchemaError(f"Schema field '{field_name}' requires a non-empty options list.",
                          field_name=field_name)
    options = []
    for index, option in enumerate(raw_options):
        if not isinstance(option, str):
            raise SchemaError(f"Schema field '{field_name}' has non-string option at index {index}.",
                              field_name=field_name)
        options.append(option.strip())
    return tuple(options)


def parse_field(raw: Any, index: int) -> FieldSchema:
    """
    Validate one raw field description.

    Args:
        raw: Parsed field description
        index: Position of the field, used in messages when it has no name

    Returns:
        Validated FieldSchema

    Raises:
        SchemaError: If the field description is invalid
    """
    if not isinstance(raw, dict):
        raise SchemaError(f"Schema field at index {index} must be an object.")

    field_name = _trimmed(raw.get('name')) or ""
    if not field_name:
        raise SchemaError(f"Schema field at index {index} is missing a name.")

    field_type = _trimmed(raw.get('type')) or ""
    if field_type not in SUPPORTED_FIELD_TYPES:
        raise SchemaError(f"Schema field '{field_name}' has unsupported type '{field_type}'.",
                          field_name=field_name)

    if field_type == FieldType.CHOICE.value:
        options = _parse_options(field_name, raw.get('options'))
    elif 'options' in raw:
        # Present at all, even as null, counts as declaring options
        raise SchemaError(f"Schema field '{field_name}' has options but is not of type 'choice'.",
                          field_name=field_name)
    else:
        options = None

    required = raw.get('required') if isinstance(raw.get('required'), bool) else None

    try:
        return FieldSchema(
            name=field_name,
            type=FieldType(field_type),
            label=_trimmed(raw.get('label')),
            required=required,
            options=options,
        )
    except ValidationError as e:
        raise _schema_error_from_validation(e, field_name) from e


def parse_schema(raw: Any) -> DatabaseSchema:
    """
    Validate an untrusted schema description.

    Args:
        raw: Parsed JSON/YAML value

    Returns:
        Validated DatabaseSchema with trimmed strings and defaults applied

    Raises:
        SchemaError: If the description is not a valid schema
    """
    if not isinstance(raw, dict):
        raise SchemaError("Schema must be a JSON object.")

    name = _trimmed(raw.get('name')) or DEFAULT_TABLE_NAME
    if name == METADATA_TABLE:
        raise SchemaError(f"Schema name '{METADATA_TABLE}' is reserved for Reqman metadata.")

    fields_raw = raw.get('fields')
    if not isinstance(fields_raw, list):
        raise SchemaError("Schema 'fields' must be a list.")

    fields = tuple(parse_field(field, index) for index, field in enumerate(fields_raw))

    try:
        schema = DatabaseSchema(
            name=name,
            fields=fields,
            primary_key=_trimmed(raw.get('primaryKey')) or None,
            description=_trimmed(raw.get('description')),
        )
    except ValidationError as e:
        raise _schema_error_from_validation(e) from e

    logger.debug(f"Validated schema '{schema.name}' with {len(schema.fields)} fields")
    return schema


def load_schema_file(schema_path: Union[str, Path]) -> DatabaseSchema:
    """
    Load and validate a schema from a JSON or YAML file.

    Args:
        schema_path: Path to the schema file

    Returns:
        Validated DatabaseSchema

    Raises:
        SchemaError: If the file is missing, unreadable or not a valid schema
    """
    full_path = Path(schema_path)

    if not full_path.exists():
        logger.error(f"Schema file not found: {full_path}")
        raise SchemaError(f"Schema file not found: {full_path}", source=full_path)

    try:
        with open(full_path, 'r', encoding='utf-8') as f:
            if full_path.suffix.lower() in ['.yaml', '.yml']:
                raw = yaml.safe_load(f)
            else:
                raw = json.load(f)
    except yaml.YAMLError as e:
        logger.error(f"YAML parsing error in {full_path}: {e}")
        raise SchemaError(f"Failed to parse schema '{full_path}': {e}", source=full_path) from e
    except json.JSONDecodeError as e:
        logger.error(f"JSON parsing error in {full_path}: {e}")
        raise SchemaError(f"Failed to parse schema '{full_path}': {e}", source=full_path) from e
    except OSError as e:
        logger.error(f"Error reading schema {full_path}: {e}")
        raise SchemaError(f"Failed to read schema '{full_path}': {e}", source=full_path) from e

    schema = parse_schema(raw)
    logger.info(f"Successfully loaded schema: {full_path}")
    return schema


def get_schema_info(schema: DatabaseSchema) -> Dict[str, Any]:
    """
    Summarize a schema for display.

    Args:
        schema: Validated schema

    Returns:
        Dictionary with schema metadata
    """
    return {
        "name": schema.name,
        "description": schema.description or "",
        "field_count": len(schema.fields),
        "primary_key": schema.primary_key,
        "required_fields": [field.name for field in schema.fields if field.is_required],
        "field_types": {field.name: field.type.value for field in schema.fields},
    }
