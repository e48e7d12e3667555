#!/usr/bin/env python3
"""
Path notation for flattened JSON fields.

A path names one leaf of a JSON document: object keys joined by '.', array
positions appended to the preceding key as '[n]'. Examples:

    id
    customer.address.city
    items[2].sku
    matrix[0][3]

Segments are plain Python values: a ``str`` is an object key (Name) and an
``int`` is an array position (Index). ``parse_segments`` and ``render`` are
inverses for every path the flattener produces.
"""

import re
from typing import List, Optional, Union

Segment = Union[str, int]

_PIECE_RE = re.compile(r'^(?P<name>[^\[\]]*)(?P<indices>(?:\[\d+\])*)$')
_INDEX_RE = re.compile(r'\[(\d+)\]')


def child_name(parent: str, name: str) -> str:
    """Path of object key ``name`` under ``parent``."""
    return f"{parent}.{name}" if parent else name


def child_index(parent: str, index: int) -> str:
    """Path of array position ``index`` under ``parent``."""
    return f"{parent}[{index}]"


def parse_segments(text: str) -> List[Segment]:
    """Split a path into Name and Index segments.

    Malformed pieces (unbalanced or non-numeric brackets) are kept whole as a
    Name so callers never have to deal with a parse error.
    """
    if not text:
        return []

    segments: List[Segment] = []
    for piece in text.split('.'):
        match = _PIECE_RE.match(piece)
        if match is None:
            segments.append(piece)
            continue

        name = match.group('name')
        indices = [int(n) for n in _INDEX_RE.findall(match.group('indices'))]
        # '[0]' at the start of a path has no key in front of it
        if name or not indices:
            segments.append(name)
        segments.extend(indices)
    return segments


def render(segments: List[Segment]) -> str:
    parts: List[str] = []
    for position, segment in enumerate(segments):
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif position == 0:
            parts.append(segment)
        else:
            parts.append(f".{segment}")
    return ''.join(parts)


def index_of(segment: Segment) -> Optional[int]:
    """Array position held by ``segment``, or None for an object key."""
    if isinstance(segment, int):
        return segment
    return None
