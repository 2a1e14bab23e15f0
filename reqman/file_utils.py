"""
File utilities for Reqman database documents.
Handles reading, parsing, serializing and writing TOML documents.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Union

import tomli_w

from .exceptions import DocumentError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_text(path: PathLike) -> Optional[str]:
    """
    Read a document file.

    Returns:
        File content, or None if the file does not exist

    Raises:
        DocumentError: If the file exists but cannot be read
    """
    file_path = Path(path)
    if not file_path.exists():
        return None

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to read database file {file_path}: {e}")
        raise DocumentError(f"Failed to read database '{file_path}': {e}", path=file_path,
                            original_error=e) from e


def parse_document(text: str, path: Optional[PathLike] = None) -> Dict[str, Any]:
    """
    Parse TOML text into a document mapping. Blank text is an empty document.

    Raises:
        DocumentError: If the text is not valid TOML
    """
    if not text.strip():
        return {}

    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        logger.error(f"TOML parsing error in {path}: {e}")
        raise DocumentError(f"Failed to parse database TOML '{path}': {e}", path=path,
                            original_error=e) from e


def serialize_document(document: Dict[str, Any], path: Optional[PathLike] = None) -> str:
    """
    Serialize a document mapping to TOML text.

    Raises:
        DocumentError: If the document holds values TOML cannot represent
    """
    try:
        return tomli_w.dumps(document)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize database {path}: {e}")
        raise DocumentError(f"Failed to serialize database '{path}': {e}", path=path,
                            original_error=e) from e


def write_document(path: PathLike, document: Dict[str, Any]) -> None:
    """
    Overwrite a document file with the full serialized document.

    The document is serialized before the file is opened, so a document
    that cannot be serialized leaves the file untouched.

    Raises:
        DocumentError: If serialization or writing fails
    """
    file_path = Path(path)
    output = serialize_document(document, file_path)

    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(output)
    except OSError as e:
        logger.error(f"Failed to write database file {file_path}: {e}")
        raise DocumentError(f"Failed to write database '{file_path}': {e}", path=file_path,
                            original_error=e) from e

    logger.debug(f"Wrote {len(output)} bytes to {file_path}")
