#!/usr/bin/env python3
"""
Flatten arbitrary JSON values into single-level rows.

Each top-level record becomes one ``Dict[str, str]`` mapping a path (see
path_grammar.py) to the text of a scalar leaf:

    {"id": 1, "tags": ["x", "y"], "owner": {"name": "Ana"}}
    -> {"id": "1", "tags[0]": "x", "tags[1]": "y", "owner.name": "Ana"}

Rules:
- Nested objects are merged into the same row under dotted paths.
- Arrays contribute one column per position, never extra rows.
- Objects inside arrays get every field written under ``path[i]`` (objects and
  arrays as a blank cell) and are then walked again from ``path[i]`` so deeper
  nesting is captured too: ``items[0].tags`` is blank, ``items[0].tags[0]``
  holds the value.
- Arrays inside arrays are walked with ``path[i]`` as the new parent.
- Every value is stored as text; null is written as ``"null"``.
"""

from typing import Any, Dict, List

from path_grammar import child_index, child_name

NULL_TEXT = 'null'
COMPOUND_TEXT = ''

FlatRow = Dict[str, str]


def is_scalar(value: Any) -> bool:
    return not isinstance(value, (dict, list))


def stringify(value: Any) -> str:
    """Plain text form of a JSON scalar."""
    if value is None:
        return NULL_TEXT
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def flatten(value: Any, parent_path: str = '') -> FlatRow:
    """Flatten one record into a FlatRow.

    Objects and arrays are walked recursively; a bare scalar is stored under
    ``parent_path`` (the empty path for a top-level scalar record).
    """
    row: FlatRow = {}
    if isinstance(value, dict):
        _flatten_object(value, parent_path, row)
    elif isinstance(value, list):
        _flatten_array(value, parent_path, row)
    else:
        row[parent_path] = stringify(value)
    return row


def flatten_records(records: Any) -> List[FlatRow]:
    """One FlatRow per element of a record array, or a single row otherwise."""
    if isinstance(records, list):
        return [flatten(record) for record in records]
    return [flatten(records)]


def _flatten_object(node: Dict[str, Any], parent_path: str, row: FlatRow) -> None:
    for key, child in node.items():
        path = child_name(parent_path, str(key))
        if isinstance(child, list):
            _flatten_array(child, path, row)
        elif isinstance(child, dict):
            _flatten_object(child, path, row)
        else:
            row[path] = stringify(child)


def _flatten_array(items: List[Any], parent_path: str, row: FlatRow) -> None:
    for i, item in enumerate(items):
        item_path = child_index(parent_path, i)
        if isinstance(item, dict):
            # nested fields also get their own (blank) column next to their children
            for field, value in item.items():
                text = stringify(value) if is_scalar(value) else COMPOUND_TEXT
                row[child_name(item_path, str(field))] = text
            _flatten_object(item, item_path, row)
        elif isinstance(item, list):
            _flatten_array(item, item_path, row)
        else:
            row[item_path] = stringify(item)
