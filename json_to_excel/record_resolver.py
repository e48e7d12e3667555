#!/usr/bin/env python3
"""
Locate the record array inside a JSON document.

Exports are usually wrapped, e.g. ``{"data": [...], "total": 120}``. The
records are looked up in this order:

1. The document root, when it already is an array (a clean file).
2. The default field (``data`` unless configured otherwise).
3. A source chosen per file before processing starts: either "the root is
   the data" or an alternative field name typed by the user.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_DATA_FIELD = 'data'


class RecordResolutionError(Exception):
    """The record array could not be found in a document."""
    pass


@dataclass(frozen=True)
class RecordSource:
    """Where to read the records from: the root, or a named field."""
    field: Optional[str] = DEFAULT_DATA_FIELD
    use_root: bool = False

    @classmethod
    def root(cls) -> 'RecordSource':
        return cls(field=None, use_root=True)

    def describe(self) -> str:
        return 'document root' if self.use_root else f'field "{self.field}"'


def find_record_array(document: Any, field: str) -> Optional[list]:
    """Return ``document[field]`` when it is an array, else None."""
    if not isinstance(document, dict):
        return None
    value = document.get(field)
    return value if isinstance(value, list) else None


def needs_source(document: Any, default_field: str = DEFAULT_DATA_FIELD) -> bool:
    """True when neither the root nor the default field hold an array."""
    if isinstance(document, list):
        return False
    return find_record_array(document, default_field) is None


def resolve_records(document: Any, source: RecordSource,
                    default_field: str = DEFAULT_DATA_FIELD) -> Any:
    """Return the value to flatten for ``document``.

    Raises RecordResolutionError when the chosen field is missing or not an
    array.
    """
    if isinstance(document, list):
        return document

    records = find_record_array(document, default_field)
    if records is not None:
        return records

    if source.use_root:
        return document

    field = source.field or default_field
    records = find_record_array(document, field)
    if records is None:
        raise RecordResolutionError(f'No record array found under "{field}"')
    return records


def prompt_record_source(file_name: str, default_field: str = DEFAULT_DATA_FIELD,
                         input_fn: Callable[[str], str] = input) -> RecordSource:
    """Ask the user where the records of ``file_name`` are."""
    logger.warning(f'El archivo {file_name} no tiene un array "{default_field}".')
    answer = input_fn(f'¿El archivo {file_name} ya está limpio? (y/n): ').strip().lower()
    if answer in ('y', 'yes', 's', 'si', 'sí'):
        return RecordSource.root()

    field = input_fn('Nombre del campo con los datos (p. ej. "items", "records"): ').strip()
    if not field:
        raise RecordResolutionError(f'No field name given for {file_name}')
    return RecordSource(field=field)
