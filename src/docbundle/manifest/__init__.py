"""
Work manifest models, stores and readers.

Basic usage:
    >>> from docbundle.manifest import load_work_rows
    >>>
    >>> store, rows = load_work_rows(Path("excel/data.xlsx"))
    >>> for row in rows:
    ...     print(row.status_ref, store.get_cell(str(row.status_ref)), row.codes)
"""

from .models import CellReference, WorkRow
from .store import (
    ManifestStore,
    TableStore,
    WorkbookStore,
    cell_text,
    open_store,
)
from .loaders import DEFAULT_STATUS_COLUMN, load_work_rows, read_work_rows
from .validation import ValidationIssue, validate_row, validate_rows

__all__ = [
    # Models
    "CellReference",
    "WorkRow",
    # Stores
    "ManifestStore",
    "TableStore",
    "WorkbookStore",
    "cell_text",
    "open_store",
    # Loaders
    "DEFAULT_STATUS_COLUMN",
    "load_work_rows",
    "read_work_rows",
    # Validation
    "ValidationIssue",
    "validate_row",
    "validate_rows",
]
