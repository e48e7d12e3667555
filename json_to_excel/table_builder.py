#!/usr/bin/env python3
"""Rectangular table assembly from ordered headers and flattened rows."""

from dataclasses import dataclass, field
from typing import Iterator, List, Mapping, Sequence

BLANK = ''


@dataclass
class Table:
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)

    @property
    def column_count(self) -> int:
        return len(self.headers)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def iter_table_rows(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> Iterator[List[str]]:
    """Yield one cell list per row, aligned to ``headers``.

    Headers missing from a row produce a blank cell.
    """
    for row in rows:
        yield [row.get(header, BLANK) for header in headers]


def build_table(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> Table:
    return Table(headers=list(headers), rows=list(iter_table_rows(headers, rows)))
