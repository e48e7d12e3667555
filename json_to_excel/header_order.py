#!/usr/bin/env python3
"""
Column headers for a flattened document.

``collect_headers`` gathers every path seen in any row; ``order_headers``
sorts them by structure instead of plain text so that array positions follow
numeric order and parents come before their children:

    plain sort:       items[1], items[10], items[2]
    structural sort:  items[1], items[2], items[10]
"""

from functools import cmp_to_key
from typing import Iterable, List, Mapping, Set

from path_grammar import index_of, parse_segments


def collect_headers(rows: Iterable[Mapping[str, str]]) -> Set[str]:
    headers: Set[str] = set()
    for row in rows:
        headers.update(row.keys())
    return headers


def _sign(a, b) -> int:
    return (a > b) - (a < b)


def compare_headers(a: str, b: str) -> int:
    """Structural comparison of two header paths (negative, zero, positive).

    Segments are compared pairwise: two array positions numerically, two keys
    by text, and an array position always before a key. When one path is a prefix of the other the shorter one goes
    first. Empty headers sort before everything else.
    """
    if not a or not b:
        if a == b:
            return 0
        return -1 if not a else 1

    a_parts = parse_segments(a)
    b_parts = parse_segments(b)

    for a_part, b_part in zip(a_parts, b_parts):
        a_index = index_of(a_part)
        b_index = index_of(b_part)
        if a_index is not None and b_index is not None:
            cmp = _sign(a_index, b_index)
        elif a_index is not None:
            return -1
        elif b_index is not None:
            return 1
        else:
            cmp = _sign(a_part, b_part)
        if cmp != 0:
            return cmp

    cmp = _sign(len(a_parts), len(b_parts))
    if cmp != 0:
        return cmp
    # 'a[1]' and 'a[01]' parse the same; keep the order total
    return _sign(a, b)


def order_headers(headers: Iterable[str]) -> List[str]:
    return sorted(set(headers), key=cmp_to_key(compare_headers))
