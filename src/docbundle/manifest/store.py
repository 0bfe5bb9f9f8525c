"""
Tabular manifest stores.

The pipeline only needs three read operations from a manifest, captured by
the ``ManifestStore`` protocol. Two adapters are provided: an openpyxl-backed
workbook store and an in-memory table store used for CSV files.
"""

from __future__ import annotations

import csv
import zipfile
from xml.etree.ElementTree import ParseError
from pathlib import Path
from typing import Any, Iterator, Protocol, Sequence

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from docbundle.errors import ManifestUnreadable

from .models import CellReference


WORKBOOK_SUFFIXES = {".xlsx", ".xlsm"}
TABLE_SUFFIXES = {".csv"}


class ManifestStore(Protocol):
    """Minimal read interface over a manifest."""

    def get_cell(self, ref: str) -> str:
        ...

    def iter_column(self, column: str) -> Iterator[tuple[str, int]]:
        ...

    def iter_row(self, row: int) -> Iterator[tuple[str, int]]:
        ...


def cell_text(value: Any) -> str:
    """
    Render a cell value the way it reads in a spreadsheet.

    Example:
        >>> cell_text(None), cell_text(123.0), cell_text(1.5), cell_text(" x ")
        ('', '123', '1.5', ' x ')
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class WorkbookStore:
    """ManifestStore over a single openpyxl worksheet."""

    def __init__(self, worksheet: Worksheet) -> None:
        self.worksheet = worksheet

    def get_cell(self, ref: str) -> str:
        return cell_text(self.worksheet[ref].value)

    def iter_column(self, column: str) -> Iterator[tuple[str, int]]:
        idx = CellReference(column=column, row=1).column_index
        for (cell,) in self.worksheet.iter_rows(min_col=idx, max_col=idx):
            text = cell_text(cell.value)
            if text:
                yield text, cell.row

    def iter_row(self, row: int) -> Iterator[tuple[str, int]]:
        for cells in self.worksheet.iter_rows(min_row=row, max_row=row):
            for cell in cells:
                text = cell_text(cell.value)
                if text:
                    yield text, cell.column


class TableStore:
    """ManifestStore over an in-memory grid (row-major, 0-based lists)."""

    def __init__(self, rows: Sequence[Sequence[Any]]) -> None:
        self.rows = [[cell_text(value) for value in row] for row in rows]

    def get_cell(self, ref: str) -> str:
        cell = CellReference.parse(ref)
        try:
            return self.rows[cell.row - 1][cell.column_index - 1]
        except IndexError:
            return ""

    def iter_column(self, column: str) -> Iterator[tuple[str, int]]:
        idx = CellReference(column=column, row=1).column_index - 1
        for row_number, row in enumerate(self.rows, start=1):
            if idx < len(row) and row[idx]:
                yield row[idx], row_number

    def iter_row(self, row: int) -> Iterator[tuple[str, int]]:
        if row < 1 or row > len(self.rows):
            return
        for col_number, text in enumerate(self.rows[row - 1], start=1):
            if text:
                yield text, col_number


def open_workbook_store(path: Path, sheet: str | None = None) -> WorkbookStore:
    """
    Open an Excel workbook as a manifest store.

    Parameters:
        path: Path to the .xlsx/.xlsm file
        sheet: Worksheet name (default: first sheet)

    Raises:
        ManifestUnreadable: If the workbook cannot be opened or the sheet is missing
    """
    try:
        workbook = openpyxl.load_workbook(path, data_only=True)
    except (
        OSError, InvalidFileException, zipfile.BadZipFile, ParseError, KeyError, ValueError
    ) as e:
        raise ManifestUnreadable(f"Cannot open workbook {path}: {e}") from e

    if sheet is None:
        return WorkbookStore(workbook.worksheets[0])
    if sheet not in workbook.sheetnames:
        raise ManifestUnreadable(f"Worksheet {sheet!r} not found in {path}")
    return WorkbookStore(workbook[sheet])


def open_table_store(path: Path) -> TableStore:
    """Load a CSV file into an in-memory manifest store."""
    try:
        with path.open("r", encoding="utf-8-sig", newline="") as handle:
            return TableStore(list(csv.reader(handle)))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise ManifestUnreadable(f"Cannot read table {path}: {e}") from e


def open_store(path: Path, sheet: str | None = None) -> ManifestStore:
    """
    Open a manifest file, picking the adapter from its suffix.

    Raises:
        ManifestUnreadable: If the file is missing, unsupported or unparsable
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ManifestUnreadable(f"Manifest not found: {path}")

    suffix = path.suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        return open_workbook_store(path, sheet)
    if suffix in TABLE_SUFFIXES:
        return open_table_store(path)
    raise ManifestUnreadable(f"Unsupported manifest format: {path.suffix or path.name}")
