"""
Pydantic models for the work manifest.

A manifest is a sheet where each data row holds a status cell in the first
column followed by the document codes that make up one merged artifact.
"""

from __future__ import annotations

from openpyxl.utils.cell import column_index_from_string, coordinate_from_string
from pydantic import BaseModel, ConfigDict, Field, field_validator


class CellReference(BaseModel):
    """
    Address of a single manifest cell.

    Example:
        >>> ref = CellReference(column="A", row=2)
        >>> str(ref)
        'A2'
        >>> CellReference.parse("B7").column_index
        2
    """

    model_config = ConfigDict(frozen=True)

    column: str
    row: int = Field(ge=1)

    @field_validator("column")
    @classmethod
    def normalize_column(cls, value: str) -> str:
        value = value.strip().upper()
        # Raises ValueError for anything that is not a column letter.
        column_index_from_string(value)
        return value

    @classmethod
    def parse(cls, coordinate: str) -> CellReference:
        """Build a reference from an A1-style coordinate."""
        column, row = coordinate_from_string(coordinate.strip().upper())
        return cls(column=column, row=row)

    @property
    def column_index(self) -> int:
        return column_index_from_string(self.column)

    def __str__(self) -> str:
        return f"{self.column}{self.row}"


class WorkRow(BaseModel):
    """
    One unit of work: a status cell plus the ordered document codes to merge.

    The order of ``codes`` is the order of the documents in the merged
    artifact. Codes are neither sorted nor deduplicated.
    """

    model_config = ConfigDict(frozen=True)

    status_ref: CellReference
    codes: tuple[str, ...] = ()

    @property
    def row_index(self) -> int:
        """Manifest row number (1-based, header included)."""
        return self.status_ref.row
