"""
Record diff utilities for Reqman.
Reports which fields an edit changed, added or removed.
"""

import logging
from typing import Any, Dict, List, Mapping

from deepdiff import DeepDiff

logger = logging.getLogger(__name__)

# DeepDiff report types grouped by what happened to a top-level field
_CHANGE_GROUPS = {
    'values_changed': 'changed',
    'type_changes': 'changed',
    'dictionary_item_added': 'added',
    'dictionary_item_removed': 'removed',
}


def calculate_record_diff(original: Mapping[str, Any], modified: Mapping[str, Any]) -> Dict[str, List[str]]:
    """
    Compare two flat records.

    Args:
        original: Record before the edit
        modified: Record after the edit

    Returns:
        Dict with 'changed', 'added' and 'removed' lists of field names,
        each in first-seen order
    """
    diff = DeepDiff(dict(original), dict(modified), view='tree')

    result: Dict[str, List[str]] = {'changed': [], 'added': [], 'removed': []}
    for report_type, group in _CHANGE_GROUPS.items():
        for level in diff.get(report_type, []):
            path = level.path(output_format='list')
            if not path:
                continue
            field_name = str(path[0])
            if field_name not in result[group]:
                result[group].append(field_name)

    logger.debug(f"Record diff: {result}")
    return result


def has_changes(diff: Dict[str, List[str]]) -> bool:
    return any(diff.get(group) for group in ('changed', 'added', 'removed'))


def format_change_summary(diff: Dict[str, List[str]]) -> str:
    """Human-readable summary, e.g. 'changed: title; added: due'."""
    if not has_changes(diff):
        return "no changes"
    parts = [f"{group}: {', '.join(diff[group])}" for group in ('changed', 'added', 'removed') if diff.get(group)]
    return "; ".join(parts)
