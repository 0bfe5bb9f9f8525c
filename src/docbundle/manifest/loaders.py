"""
Reading work rows from a manifest.

Provides functions to turn a manifest store (or a manifest file) into the
ordered list of WorkRow records consumed by the pipeline.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from docbundle.errors import ManifestUnreadable

from .models import CellReference, WorkRow
from .store import ManifestStore, open_store


DEFAULT_STATUS_COLUMN = "A"
HEADER_ROW = 1


def read_work_rows(
    store: ManifestStore,
    *,
    status_column: str = DEFAULT_STATUS_COLUMN,
) -> list[WorkRow]:
    """
    Parse a manifest store into work rows.

    Every populated cell of the status column below the header marks a work
    row. The codes of that row are the remaining populated cells, in column
    order.

    Parameters:
        store: Manifest store to read from
        status_column: Column letter holding each row's status

    Returns:
        WorkRow list in manifest order

    Raises:
        ManifestUnreadable: If status_column is not a column letter

    Example:
        >>> store = TableStore([["Status", "Doc"], ["Pendente", "c1", "c2"]])
        >>> rows = read_work_rows(store)
        >>> str(rows[0].status_ref), rows[0].codes
        ('A2', ('c1', 'c2'))
    """
    try:
        header = CellReference(column=status_column, row=HEADER_ROW)
    except ValidationError as e:
        raise ManifestUnreadable(f"Invalid status column {status_column!r}") from e
    status_column, status_idx = header.column, header.column_index

    row_numbers = [
        row_number
        for _text, row_number in store.iter_column(status_column)
        if row_number != HEADER_ROW
    ]

    rows: list[WorkRow] = []
    for row_number in row_numbers:
        codes = tuple(
            text for text, col_idx in store.iter_row(row_number) if col_idx != status_idx
        )
        rows.append(
            WorkRow(
                status_ref=CellReference(column=status_column, row=row_number),
                codes=codes,
            )
        )
    return rows


def load_work_rows(
    path: Path,
    *,
    sheet: str | None = None,
    status_column: str = DEFAULT_STATUS_COLUMN,
) -> tuple[ManifestStore, list[WorkRow]]:
    """
    Open a manifest file and read its work rows.

    The store is returned alongside the rows because status cells are read
    from it again at processing time.

    Raises:
        ManifestUnreadable: If the manifest cannot be opened or parsed
    """
    store = open_store(path, sheet=sheet)
    return store, read_work_rows(store, status_column=status_column)
