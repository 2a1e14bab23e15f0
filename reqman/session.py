"""
Database session for Reqman.

Request/response operations over one database file: create, update,
delete and query. Validation and selection problems come back as
OperationResult values; schema and document problems are raised.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple, Union

from .diff_utils import calculate_record_diff, format_change_summary
from .exceptions import DocumentError, OperationError
from .field_values import FormValue, build_record_from_form, record_to_form_values, validate_record
from .formatting import record_summary
from .metadata_codec import ensure_database_file, load_schema_from_database
from .record_filter import filter_records
from .record_store import LoadedDatabase, Record, append_record, delete_record, load_database, replace_record
from .schema_loader import DatabaseSchema, load_schema_file

logger = logging.getLogger(__name__)

EMBEDDED_SCHEMA_SOURCE = "embedded in database"


@dataclass
class OperationResult:
    """Outcome of a create, update or delete request."""
    success: bool
    message: str
    errors: List[str] = field(default_factory=list)
    index: Optional[int] = None
    changes: Dict[str, List[str]] = field(default_factory=dict)


class DatabaseSession:
    """Holds the schema and the loaded records of one database file."""

    def __init__(self, schema: DatabaseSchema, loaded: LoadedDatabase, schema_source: str):
        self.schema = schema
        self.loaded = loaded
        self.schema_source = schema_source

    @property
    def path(self) -> Path:
        return self.loaded.path

    @property
    def records(self) -> List[Record]:
        return self.loaded.records

    def record(self, index: Optional[int]) -> Optional[Record]:
        if index is None or index < 0 or index >= len(self.records):
            return None
        return self.records[index]

    def query(self, text: str) -> List[int]:
        return filter_records(self.records, self.schema, text)

    def summaries(self, indices: List[int]) -> List[Tuple[str, str]]:
        return [record_summary(self.schema, self.records[index], index) for index in indices]

    def form_values(self, index: Optional[int]) -> Dict[str, FormValue]:
        """Raw form values for editing the record at index (blank form when None)."""
        return record_to_form_values(self.schema, self.record(index) or {})

    def stale_records(self) -> Dict[int, List[str]]:
        """Records that no longer fit the schema, with the reasons."""
        report = {}
        for index, record in enumerate(self.records):
            errors = validate_record(self.schema, record)
            if errors:
                report[index] = errors
        return report

    def create(self, raw_values: Mapping[str, FormValue]) -> OperationResult:
        form = build_record_from_form(self.schema, raw_values)
        if not form.is_valid:
            return OperationResult(False, f"Validation errors: {' '.join(form.errors)}", errors=form.errors)

        index = append_record(self.loaded, self.schema, form.record)
        logger.info(f"Added record #{index + 1} to '{self.schema.name}'")
        return OperationResult(True, f"Added record #{index + 1}.", index=index)

    def update(self, index: Optional[int], raw_values: Mapping[str, FormValue]) -> OperationResult:
        if self.record(index) is None:
            return self._operation_failed(OperationError("Select a record to edit.", index=index))

        form = build_record_from_form(self.schema, raw_values)
        if not form.is_valid:
            return OperationResult(False, f"Validation errors: {' '.join(form.errors)}",
                                   errors=form.errors, index=index)

        try:
            previous = replace_record(self.loaded, self.schema, index, form.record)
        except OperationError as e:
            return self._operation_failed(e)

        changes = calculate_record_diff(previous, form.record)
        logger.info(f"Updated record #{index + 1} in '{self.schema.name}' ({format_change_summary(changes)})")
        return OperationResult(True, f"Updated record #{index + 1}.", index=index, changes=changes)

    def delete(self, index: Optional[int]) -> OperationResult:
        try:
            delete_record(self.loaded, self.schema, index)
        except OperationError as e:
            return self._operation_failed(e)

        logger.info(f"Deleted record #{index + 1} from '{self.schema.name}'")
        return OperationResult(True, f"Deleted record #{index + 1}.", index=index)

    @staticmethod
    def _operation_failed(error: OperationError) -> OperationResult:
        logger.warning(f"Operation rejected: {error.message}")
        return OperationResult(False, error.message, errors=[error.message], index=error.index)


def open_session(db_path: Union[str, Path], schema_path: Optional[Union[str, Path]] = None) -> DatabaseSession:
    """
    Resolve the schema and load a database.

    With a schema file, the database is created or its embedded schema is
    replaced. Without one, the database must exist and carry an embedded
    schema.

    Args:
        db_path: Path to the TOML database
        schema_path: Optional path to a JSON/YAML schema file

    Returns:
        Ready DatabaseSession

    Raises:
        SchemaError: If the schema is invalid
        DocumentError: If the database cannot be used
    """
    db_path = Path(db_path).resolve()

    if schema_path is not None:
        schema_file = Path(schema_path).resolve()
        schema = load_schema_file(schema_file)
        ensure_database_file(db_path, schema)
        schema_source = str(schema_file)
    else:
        if not db_path.exists():
            raise DocumentError(f"Database file not found: {db_path}\nProvide a schema to create it.",
                                path=db_path)
        schema = load_schema_from_database(db_path)
        schema_source = EMBEDDED_SCHEMA_SOURCE

    loaded = load_database(db_path, schema)
    logger.info(f"Opened '{schema.name}' at {db_path} (schema: {schema_source})")
    return DatabaseSession(schema, loaded, schema_source)
