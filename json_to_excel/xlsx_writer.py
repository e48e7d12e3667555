#!/usr/bin/env python3
"""
Spreadsheet output for flattened tables.

The XLSX writer uses an openpyxl write-only workbook so rows are streamed to
disk instead of being held as cell objects; large exports stay flat in memory.
"""

import csv
import logging
from typing import Callable, Iterable, List, Optional, Sequence

try:
    from openpyxl import Workbook
    from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
    OPENPYXL_AVAILABLE = True
except ImportError:
    OPENPYXL_AVAILABLE = False

logger = logging.getLogger(__name__)

MAX_ROWS = 1_048_576
MAX_COLUMNS = 16_384
MAX_CELL_LENGTH = 32_767

RowCallback = Callable[[int], None]


class WorkbookWriteError(Exception):
    """The table cannot be written as a spreadsheet."""
    pass


def _clean_cell(value: str) -> Optional[str]:
    if value == '':
        return None
    value = ILLEGAL_CHARACTERS_RE.sub('', value)
    if len(value) > MAX_CELL_LENGTH:
        logger.debug(f"  Celda truncada a {MAX_CELL_LENGTH} caracteres")
        value = value[:MAX_CELL_LENGTH]
    return value


def check_limits(column_count: int, row_count: int) -> None:
    if column_count > MAX_COLUMNS:
        raise WorkbookWriteError(
            f"La tabla tiene {column_count:,} columnas; Excel admite como máximo {MAX_COLUMNS:,}"
        )
    # +1 for the header row
    if row_count + 1 > MAX_ROWS:
        raise WorkbookWriteError(
            f"La tabla tiene {row_count:,} filas; Excel admite como máximo {MAX_ROWS - 1:,} filas de datos"
        )


def write_xlsx(path: str, headers: Sequence[str], rows: Iterable[List[str]], row_count: int,
               sheet_name: str = 'JSON Data', on_row: Optional[RowCallback] = None) -> None:
    """Write a header row followed by ``rows`` to a new workbook at ``path``.

    ``on_row`` is called with the 1-based number of each data row written.
    """
    if not OPENPYXL_AVAILABLE:
        raise WorkbookWriteError(
            "openpyxl es requerido para generar archivos .xlsx\n"
            "  Instalalo con: pip install openpyxl"
        )
    check_limits(len(headers), row_count)

    workbook = Workbook(write_only=True)
    try:
        sheet = workbook.create_sheet(sheet_name)
        sheet.append([_clean_cell(h) for h in headers])
        for number, cells in enumerate(rows, start=1):
            sheet.append([_clean_cell(c) for c in cells])
            if on_row is not None:
                on_row(number)
        workbook.save(path)
    finally:
        workbook.close()


def write_csv(path: str, headers: Sequence[str], rows: Iterable[List[str]]) -> None:
    with open(path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(headers)
        for cells in rows:
            writer.writerow(cells)
