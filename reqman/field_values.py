"""
Typed field values and form coercion for Reqman records.

Every stored value is produced through a FieldValue variant, one per
FieldType, so each type has exactly one payload shape.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union

from .exceptions import FieldValidationError
from .schema_loader import DatabaseSchema, FieldSchema, FieldType

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^([0-9]{4})-([0-9]{2})-([0-9]{2})$")
TIME_PATTERN = re.compile(r"^([0-9]{2}):([0-9]{2})(?::([0-9]{2}))?$")
NUMBER_PATTERN = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")

# Raw form values arrive as strings from text inputs or booleans from toggles
FormValue = Union[str, bool, None]


@dataclass(frozen=True)
class NumberValue:
    field_type: ClassVar[FieldType] = FieldType.NUMBER
    value: Union[int, float]

    def to_raw(self) -> Union[int, float]:
        return self.value


@dataclass(frozen=True)
class TextValue:
    field_type: ClassVar[FieldType] = FieldType.TEXT
    value: str

    def to_raw(self) -> str:
        return self.value


@dataclass(frozen=True)
class BooleanValue:
    field_type: ClassVar[FieldType] = FieldType.BOOLEAN
    value: bool

    def to_raw(self) -> bool:
        return self.value


@dataclass(frozen=True)
class DateValue:
    field_type: ClassVar[FieldType] = FieldType.DATE
    value: date

    def to_raw(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeValue:
    """Time of day; text keeps the HH:MM or HH:MM:SS form that was entered."""
    field_type: ClassVar[FieldType] = FieldType.TIME
    hour: int
    minute: int
    second: int
    text: str

    def to_raw(self) -> str:
        return self.text


@dataclass(frozen=True)
class ChoiceValue:
    field_type: ClassVar[FieldType] = FieldType.CHOICE
    value: str

    def to_raw(self) -> str:
        return self.value


FieldValue = Union[NumberValue, TextValue, BooleanValue, DateValue, TimeValue, ChoiceValue]


@dataclass
class FormResult:
    """Outcome of building a record from form input."""
    record: Dict[str, Any] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def parse_date(text: str) -> Optional[date]:
    """
    Parse a calendar-correct YYYY-MM-DD date.

    Returns:
        The date, or None when the text is malformed or names a day that
        does not exist (e.g. 2023-02-29)
    """
    match = DATE_PATTERN.fullmatch(text)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    if (parsed.year, parsed.month, parsed.day) != (year, month, day):
        return None
    return parsed


def is_valid_date(text: str) -> bool:
    return parse_date(text) is not None


def parse_time(text: str) -> Optional[TimeValue]:
    """Parse HH:MM or HH:MM:SS; seconds default to 0."""
    match = TIME_PATTERN.fullmatch(text)
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    second = int(match.group(3)) if match.group(3) else 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59 and 0 <= second <= 59):
        return None
    return TimeValue(hour=hour, minute=minute, second=second, text=text)


def is_valid_time(text: str) -> bool:
    return parse_time(text) is not None


def parse_number(text: str) -> Optional[Union[int, float]]:
    """Parse a finite decimal number; integers stay int."""
    if not NUMBER_PATTERN.fullmatch(text):
        return None
    try:
        return int(text)
    except ValueError:
        pass
    number = float(text)
    if not math.isfinite(number):
        return None
    return number


def to_boolean(raw: Any) -> bool:
    """Plain truthiness: any non-empty string is true."""
    return bool(raw)


def _raw_string(raw: Any) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def coerce_field(field_schema: FieldSchema, raw: Any) -> Optional[FieldValue]:
    """
    Coerce one raw form value according to its field schema.

    Args:
        field_schema: Declared field
        raw: Raw form value (string, boolean or None)

    Returns:
        Typed value, or None when the field was left blank and is optional

    Raises:
        FieldValidationError: If the value is missing but required, or malformed
    """
    name = field_schema.name

    if field_schema.type is FieldType.BOOLEAN:
        return BooleanValue(to_boolean(raw))

    text = _raw_string(raw)
    if not text:
        if field_schema.is_required:
            raise FieldValidationError(name, f"{name} is required.")
        return None

    if field_schema.type is FieldType.CHOICE:
        options = field_schema.options or ()
        if text not in options:
            raise FieldValidationError(name, f"{name} must be one of: {', '.join(options)}.")
        return ChoiceValue(text)

    if field_schema.type is FieldType.NUMBER:
        number = parse_number(text)
        if number is None:
            raise FieldValidationError(name, f"{name} must be a valid number.")
        return NumberValue(number)

    if field_schema.type is FieldType.DATE:
        parsed = parse_date(text)
        if parsed is None:
            raise FieldValidationError(name, f"{name} must be a valid date (YYYY-MM-DD).")
        return DateValue(parsed)

    if field_schema.type is FieldType.TIME:
        parsed_time = parse_time(text)
        if parsed_time is None:
            raise FieldValidationError(name, f"{name} must be a valid time (HH:MM or HH:MM:SS).")
        return parsed_time

    return TextValue(text)


def build_record_from_form(schema: DatabaseSchema, raw_values: Mapping[str, FormValue]) -> FormResult:
    """
    Build a typed record from raw form values.

    All fields are processed in declaration order and every failure is
    reported; a failing field is left out of the record. The record may
    only be persisted when the result has no errors.

    Args:
        schema: Validated schema
        raw_values: Mapping of field name to raw form value

    Returns:
        FormResult with the record and the list of error messages
    """
    result = FormResult()

    for field_schema in schema.fields:
        raw = raw_values.get(field_schema.name)
        try:
            value = coerce_field(field_schema, raw)
        except FieldValidationError as e:
            logger.debug(f"Coercion failed for {field_schema.name}: {e.message}")
            result.errors.append(e.message)
            continue

        if value is not None:
            result.record[field_schema.name] = value.to_raw()

    if result.errors:
        logger.info(f"Form for '{schema.name}' has {len(result.errors)} validation errors")
    return result


def record_to_form_values(schema: DatabaseSchema, record: Mapping[str, Any]) -> Dict[str, FormValue]:
    """
    Produce raw form values that reproduce a stored record.

    Used to pre-fill edit forms. Absent values become empty strings and
    booleans stay booleans.
    """
    values: Dict[str, FormValue] = {}
    for field_schema in schema.fields:
        value = record.get(field_schema.name)
        if field_schema.type is FieldType.BOOLEAN:
            values[field_schema.name] = to_boolean(value) if value is not None else False
        elif value is None:
            values[field_schema.name] = ""
        elif isinstance(value, bool):
            values[field_schema.name] = "true" if value else "false"
        elif isinstance(value, date):
            values[field_schema.name] = value.isoformat()
        else:
            values[field_schema.name] = str(value)
    return values


def validate_record(schema: DatabaseSchema, record: Mapping[str, Any]) -> List[str]:
    """
    Check a stored record against the schema without changing it.

    Records written under an older embedded schema keep their fields
    until edited; this reports where they no longer fit.

    Returns:
        Error messages (empty if the record fits the schema)
    """
    errors = build_record_from_form(schema, record_to_form_values(schema, record)).errors
    for key in record:
        if schema.get_field(key) is None:
            errors.append(f"{key} is not defined in schema '{schema.name}'.")
    return errors
