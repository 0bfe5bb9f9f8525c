"""
Advisory checks for parsed work rows.

These never block a run. They flag manifest rows that will predictably end up
with a failed merge or a merged artifact containing the same document twice.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass

from .models import WorkRow


@dataclass(frozen=True)
class ValidationIssue:
    """
    Represents a manifest problem.

    Attributes:
        ref: Cell coordinate the issue refers to (e.g., "A4")
        message: Human-readable description of the issue
    """

    ref: str
    message: str


def validate_row(row: WorkRow) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if not row.codes:
        issues.append(ValidationIssue(str(row.status_ref), "Row has no document codes."))
        return issues

    for code, count in Counter(row.codes).items():
        if count > 1:
            issues.append(
                ValidationIssue(
                    str(row.status_ref),
                    f"Code {code!r} appears {count} times in the row.",
                )
            )

    return issues


def validate_rows(rows: list[WorkRow]) -> list[ValidationIssue]:
    """
    Validate every row of a manifest.

    Returns:
        List of validation issues (empty if valid)
    """
    issues: list[ValidationIssue] = []
    for row in rows:
        issues.extend(validate_row(row))
    return issues
