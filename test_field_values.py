"""
Unit tests for field value coercion.
"""

from datetime import date

import pytest

from reqman.exceptions import FieldValidationError
from reqman.field_values import (
    BooleanValue,
    ChoiceValue,
    DateValue,
    NumberValue,
    TextValue,
    TimeValue,
    build_record_from_form,
    coerce_field,
    is_valid_date,
    is_valid_time,
    parse_number,
    record_to_form_values,
    to_boolean,
    validate_record,
)
from reqman.schema_loader import FieldType, parse_field, parse_schema


@pytest.fixture
def schema():
    return parse_schema({
        "name": "tasks",
        "fields": [
            {"name": "id", "type": "number", "required": True},
            {"name": "title", "type": "text", "required": True},
            {"name": "status", "type": "choice", "options": ["todo", "done"], "required": True},
            {"name": "due", "type": "date"},
            {"name": "reminder", "type": "time"},
            {"name": "urgent", "type": "boolean"},
        ],
        "primaryKey": "id",
    })


def field(field_type, required=False, options=None):
    raw = {"name": "value", "type": field_type, "required": required}
    if options is not None:
        raw["options"] = options
    return parse_field(raw, 0)


class TestDateValidation:
    """Test calendar-correct date parsing."""

    @pytest.mark.parametrize("text", ["2024-02-29", "2023-12-31", "2000-02-29", "0001-01-01"])
    def test_valid_dates(self, text):
        assert is_valid_date(text)

    @pytest.mark.parametrize("text", [
        "2023-02-29",
        "2024-02-30",
        "1900-02-29",
        "2024-13-01",
        "2024-00-10",
        "2024-04-31",
        "2024-1-01",
        "24-01-01",
        "2024/01/01",
        "2024-01-01T00:00",
        "2024-01-01\n",
        "٢٠٢٤-٠٢-٢٩",
        "",
    ])
    def test_invalid_dates(self, text):
        assert not is_valid_date(text)

    def test_date_field_stores_iso_text(self):
        value = coerce_field(field("date"), " 2024-02-29 ")

        assert value == DateValue(date(2024, 2, 29))
        assert value.to_raw() == "2024-02-29"


class TestTimeValidation:
    """Test time-of-day parsing."""

    @pytest.mark.parametrize("text", ["00:00", "08:30", "23:59:59", "12:00:00"])
    def test_valid_times(self, text):
        assert is_valid_time(text)

    @pytest.mark.parametrize("text", ["24:00:00", "24:00", "12:60", "12:30:60", "8:30", "0830", "12:30:5", "08:30\n", "١٢:٣٠", ""])
    def test_invalid_times(self, text):
        assert not is_valid_time(text)

    def test_time_keeps_entered_text(self):
        value = coerce_field(field("time"), "08:30")

        assert isinstance(value, TimeValue)
        assert (value.hour, value.minute, value.second) == (8, 30, 0)
        assert value.to_raw() == "08:30"


class TestNumberAndBoolean:
    """Test number parsing and boolean truthiness."""

    def test_integers_stay_integers(self):
        assert parse_number("42") == 42
        assert isinstance(parse_number("-7"), int)

    def test_decimals_become_floats(self):
        assert parse_number("3.5") == 3.5
        assert parse_number("1e3") == 1000.0
        assert isinstance(parse_number("2.0"), float)

    @pytest.mark.parametrize("text", ["abc", "1,5", "nan", "inf", "1.2.3", "--1", "1e999", "١٢", "١.5", "12\n"])
    def test_invalid_numbers(self, text):
        assert parse_number(text) is None

    @pytest.mark.parametrize("raw", [False, None, "", 0])
    def test_false_values(self, raw):
        assert to_boolean(raw) is False

    @pytest.mark.parametrize("raw", [True, "true", "false", "0", "off", " "])
    def test_true_values(self, raw):
        assert to_boolean(raw) is True

    def test_boolean_field_never_fails(self):
        assert coerce_field(field("boolean", required=True), None) == BooleanValue(False)
        assert coerce_field(field("boolean"), "on") == BooleanValue(True)


class TestCoerceField:
    """Test coercion of single fields."""

    def test_blank_optional_field_is_omitted(self):
        assert coerce_field(field("text"), "   ") is None
        assert coerce_field(field("number"), None) is None

    def test_blank_required_field_fails(self):
        with pytest.raises(FieldValidationError, match="value is required."):
            coerce_field(field("text", required=True), "  ")

    def test_text_is_trimmed(self):
        assert coerce_field(field("text"), "  milk ") == TextValue("milk")

    def test_choice_must_match_option(self):
        choice = field("choice", options=["todo", "done"])

        assert coerce_field(choice, "done") == ChoiceValue("done")
        with pytest.raises(FieldValidationError, match="value must be one of: todo, done."):
            coerce_field(choice, "Done")

    def test_number_error_message(self):
        with pytest.raises(FieldValidationError) as exc_info:
            coerce_field(field("number"), "ten")

        assert exc_info.value.field_name == "value"
        assert str(exc_info.value) == "value must be a valid number."

    def test_number_value(self):
        value = coerce_field(field("number"), "12")

        assert value == NumberValue(12)
        assert value.field_type is FieldType.NUMBER


class TestBuildRecordFromForm:
    """Test building whole records from form input."""

    def test_valid_form(self, schema):
        result = build_record_from_form(schema, {
            "id": "1",
            "title": " Buy milk ",
            "status": "todo",
            "due": "2024-02-29",
            "reminder": "08:30",
            "urgent": True,
        })

        assert result.is_valid
        assert result.record == {
            "id": 1,
            "title": "Buy milk",
            "status": "todo",
            "due": "2024-02-29",
            "reminder": "08:30",
            "urgent": True,
        }

    def test_optional_blank_fields_are_omitted(self, schema):
        result = build_record_from_form(schema, {"id": "2", "title": "x", "status": "done", "due": ""})

        assert result.is_valid
        assert result.record == {"id": 2, "title": "x", "status": "done", "urgent": False}

    def test_all_errors_reported_in_field_order(self, schema):
        result = build_record_from_form(schema, {
            "id": "one",
            "title": "",
            "status": "later",
            "due": "2023-02-29",
            "reminder": "24:00:00",
        })

        assert not result.is_valid
        assert result.errors == [
            "id must be a valid number.",
            "title is required.",
            "status must be one of: todo, done.",
            "due must be a valid date (YYYY-MM-DD).",
            "reminder must be a valid time (HH:MM or HH:MM:SS).",
        ]
        assert "id" not in result.record
        assert result.record["urgent"] is False

    def test_non_ascii_digits_rejected(self, schema):
        result = build_record_from_form(schema, {
            "id": "١٢",
            "title": "t",
            "status": "todo",
            "due": "٢٠٢٤-٠٢-٢٩",
            "reminder": "١٢:٣٠",
        })

        assert result.errors == [
            "id must be a valid number.",
            "due must be a valid date (YYYY-MM-DD).",
            "reminder must be a valid time (HH:MM or HH:MM:SS).",
        ]
        assert result.record == {"title": "t", "status": "todo", "urgent": False}

    def test_unknown_form_keys_are_ignored(self, schema):
        result = build_record_from_form(schema, {"id": "1", "title": "t", "status": "todo", "extra": "x"})

        assert "extra" not in result.record


class TestRecordRoundTrip:
    """Test converting stored records back into form values."""

    def test_record_to_form_values(self, schema):
        record = {"id": 3, "title": "Walk dog", "status": "doing", "due": date(2024, 1, 2), "urgent": True}

        values = record_to_form_values(schema, record)

        assert values == {
            "id": "3",
            "title": "Walk dog",
            "status": "doing",
            "due": "2024-01-02",
            "reminder": "",
            "urgent": True,
        }

    def test_missing_boolean_becomes_false(self, schema):
        assert record_to_form_values(schema, {})["urgent"] is False

    def test_stored_record_rebuilds_identically(self, schema):
        record = {"id": 2.5, "title": "t", "status": "done", "reminder": "23:59:59", "urgent": False}

        rebuilt = build_record_from_form(schema, record_to_form_values(schema, record))

        assert rebuilt.is_valid
        assert rebuilt.record == record


class TestValidateRecord:
    """Test checking stored records against a schema."""

    def test_matching_record(self, schema):
        assert validate_record(schema, {"id": 1, "title": "t", "status": "todo", "urgent": False}) == []

    def test_stale_record(self, schema):
        errors = validate_record(schema, {"id": 1, "status": "archived", "owner": "ann"})

        assert errors == [
            "title is required.",
            "status must be one of: todo, done.",
            "owner is not defined in schema 'tasks'.",
        ]
