"""
Exception classes for the Reqman record store.

Schema and document errors are fatal to the command that raised them;
field validation and operation errors are collected and handed back to
the caller as data.
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any, List, Union

logger = logging.getLogger(__name__)


class ReqmanError(Exception):
    """
    Base exception for record store errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaError(ReqmanError):
    """
    Raised when a schema description is malformed or inconsistent.

    The message always names the offending attribute or field so it can be
    shown to the user verbatim.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 source: Optional[Union[str, Path]] = None):
        self.field_name = field_name
        self.source = str(source) if source is not None else None

        context: Dict[str, Any] = {}
        if field_name is not None:
            context['field_name'] = field_name
        if self.source is not None:
            context['source'] = self.source

        recovery_suggestions = [
            "Check the schema description for typos",
            "Every field needs a unique name and one of: number, text, boolean, date, time, choice",
            "Choice fields need a non-empty list of unique string options"
        ]

        super().__init__(message, context, recovery_suggestions)


class DocumentError(ReqmanError):
    """
    Raised when a persisted document cannot be read, parsed or written, or
    when its embedded metadata is missing or incompatible.
    """

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None,
                 original_error: Optional[Exception] = None):
        self.path = Path(path) if path is not None else None
        self.original_error = original_error

        context: Dict[str, Any] = {}
        if self.path is not None:
            context['path'] = str(self.path)
        if original_error is not None:
            context['original_error_type'] = type(original_error).__name__
            context['original_error_message'] = str(original_error)

        recovery_suggestions = [
            "Provide a schema file to create or update the database",
            "Check that the database file is valid TOML",
            "Ensure file permissions allow reading and writing"
        ]

        super().__init__(message, context, recovery_suggestions)


class OperationError(ReqmanError):
    """Raised when an update or delete is requested without a valid selection."""

    def __init__(self, message: str, index: Optional[int] = None):
        self.index = index
        super().__init__(message, {'index': index})


class FieldValidationError(ValueError):
    """
    A single field-level coercion failure.

    These are never allowed to escape to the caller; the coercion layer
    collects them and reports their messages together.
    """

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


def describe_error(error: Exception) -> str:
    """
    Build a one-line, user-facing description for an error.

    Args:
        error: The exception that occurred

    Returns:
        Message suitable for a status line
    """
    if isinstance(error, ReqmanError):
        return error.message

    if isinstance(error, FileNotFoundError):
        return f"File not found: {error.filename}"

    if isinstance(error, PermissionError):
        return f"Permission denied: {error.filename}"

    logger.debug(f"Describing unexpected error type {type(error).__name__}")
    return f"Unexpected error: {error}"
