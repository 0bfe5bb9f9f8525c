"""
docbundle CLI

Commands:
- run: Fetch and merge the documents of every pending manifest row
- rows: List the work rows parsed from a manifest
- resolve: Print the download URL the catalog gives for a document code
"""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
from typing import Any, TextIO

import pydantic
import typer

from docbundle.catalog import (
    DEFAULT_BASE_URL,
    DEFAULT_LINK_SELECTOR,
    DEFAULT_TIMEOUT,
    CatalogResolver,
)
from docbundle.errors import ManifestUnreadable, ResolutionFailed
from docbundle.manifest import (
    DEFAULT_STATUS_COLUMN,
    CellReference,
    load_work_rows,
    validate_rows,
)
from docbundle.pipeline.coordinator import (
    DEFAULT_MANIFEST_PATH,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_SCRATCH_DIR,
    PipelineConfig,
    PipelineRunner,
)
from docbundle.pipeline.worker import DEFAULT_PENDING_STATUS, RowStatus

app = typer.Typer(add_completion=False, help="Fetch catalog documents and merge them per manifest row")

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message, then the `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            if not isinstance(value, (str, int, float, bool, type(None))):
                value = str(value)
            entry[key] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str, stream: TextIO | None = None) -> logging.Logger:
    """Send the docbundle logger's records, as JSON lines, to stderr (or `stream`)."""
    logger = logging.getLogger("docbundle")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter())
    logger.handlers[:] = [handler]
    logger.propagate = False
    return logger


def check_status_column(value: str) -> str:
    """Reject status columns that are not spreadsheet letters."""
    try:
        return CellReference(column=value, row=1).column
    except pydantic.ValidationError:
        raise typer.BadParameter(
            f"{value!r} is not a column letter (expected e.g. A, B, AA)"
        ) from None


LOGGER = logging.getLogger("docbundle")


@app.command("run")
def run_cmd(
    manifest: Path = typer.Argument(DEFAULT_MANIFEST_PATH, help="Manifest workbook (.xlsx) or CSV"),
    sheet: str | None = typer.Option(None, "--sheet", help="Worksheet name (default: first sheet)"),
    scratch_dir: Path = typer.Option(
        DEFAULT_SCRATCH_DIR, "--scratch-dir", help="Directory for individually downloaded documents"
    ),
    output_dir: Path = typer.Option(
        DEFAULT_OUTPUT_DIR, "--output-dir", help="Directory for merged documents (one per row)"
    ),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--base-url", help="Catalog item page prefix"),
    link_selector: str = typer.Option(
        DEFAULT_LINK_SELECTOR, "--link-selector", help="CSS selector of the download link"
    ),
    pending_status: str = typer.Option(
        DEFAULT_PENDING_STATUS, "--pending-status", help="Status text marking rows to process"
    ),
    status_column: str = typer.Option(
        DEFAULT_STATUS_COLUMN,
        "--status-column",
        callback=check_status_column,
        help="Column holding each row's status",
    ),
    partial_merge: bool = typer.Option(
        False, "--partial-merge/--strict-merge",
        help="Merge the documents that were fetched even if some failed",
    ),
    cleanup_scratch: bool = typer.Option(
        False, "--cleanup-scratch/--keep-scratch",
        help="Delete downloaded documents after their row is merged",
    ),
    report: Path | None = typer.Option(
        None, "--report", help="Append one JSON record per row to this JSONL file"
    ),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="HTTP timeout in seconds"),
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Logging verbosity (DEBUG, INFO, WARNING, ERROR)"
    ),
) -> None:
    """
    Fetch and merge the documents of every pending manifest row.

    Rows whose status cell is not PENDING_STATUS are skipped. Per-document and
    per-row failures are logged and never stop the run; only an unreadable
    manifest does.

    Example:
        docbundle run excel/data.xlsx --output-dir dist --report run.jsonl
    """
    global LOGGER
    LOGGER = setup_logging(log_level)

    config = PipelineConfig(
        manifest_path=manifest.expanduser(),
        sheet=sheet,
        scratch_dir=scratch_dir.expanduser(),
        output_dir=output_dir.expanduser(),
        base_url=base_url,
        link_selector=link_selector,
        pending_status=pending_status,
        status_column=status_column,
        partial_merge=partial_merge,
        cleanup_scratch=cleanup_scratch,
        report_path=report.expanduser() if report else None,
        timeout=timeout,
    )

    counts = {status: 0 for status in RowStatus}
    try:
        for outcome in PipelineRunner(config).iter_outcomes():
            counts[outcome.status] += 1
            if outcome.status is RowStatus.SKIPPED:
                continue
            if outcome.status is RowStatus.COMPLETED:
                typer.echo(f"✅ Row {outcome.row_index}: {outcome.merged_artifact_path}")
                continue
            typer.echo(f"⚠️  Row {outcome.row_index}: partially failed", err=True)
            if outcome.failed_codes:
                typer.echo(f"   Failed codes: {', '.join(outcome.failed_codes)}", err=True)
            if outcome.reason:
                typer.echo(f"   Merge skipped: {outcome.reason}", err=True)
            elif outcome.merged_artifact_path:
                typer.echo(f"   Partial output: {outcome.merged_artifact_path}", err=True)
    except ManifestUnreadable as e:
        LOGGER.error(f"Cannot read manifest {config.manifest_path}", extra={"error": str(e)})
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    # Final summary
    typer.echo(f"\n{'='*60}")
    typer.echo("📊 Summary:")
    typer.echo(f"  Rows completed: {counts[RowStatus.COMPLETED]}")
    typer.echo(f"  Rows partially failed: {counts[RowStatus.PARTIALLY_FAILED]}")
    typer.echo(f"  Rows skipped (not pending): {counts[RowStatus.SKIPPED]}")
    typer.echo(f"  Output directory: {config.output_dir}")


@app.command("rows")
def rows_cmd(
    manifest: Path = typer.Argument(..., help="Manifest workbook (.xlsx) or CSV"),
    sheet: str | None = typer.Option(None, "--sheet", help="Worksheet name (default: first sheet)"),
    status_column: str = typer.Option(
        DEFAULT_STATUS_COLUMN,
        "--status-column",
        callback=check_status_column,
        help="Column holding each row's status",
    ),
) -> None:
    """List the work rows of a manifest with their status and document codes."""
    try:
        store, rows = load_work_rows(
            manifest.expanduser(), sheet=sheet, status_column=status_column
        )
    except ManifestUnreadable as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Found {len(rows)} row(s)")
    for row in rows:
        status = store.get_cell(str(row.status_ref))
        typer.echo(f"  {row.status_ref}  [{status}]  {' '.join(row.codes)}")

    issues = validate_rows(rows)
    if issues:
        typer.echo(f"\n⚠️  {len(issues)} issue(s):", err=True)
        for i, issue in enumerate(issues, start=1):
            typer.echo(f"  {i:>3}. {issue.ref}: {issue.message}", err=True)


@app.command("resolve")
def resolve_cmd(
    code: str = typer.Argument(..., help="Document code"),
    base_url: str = typer.Option(DEFAULT_BASE_URL, "--base-url", help="Catalog item page prefix"),
    link_selector: str = typer.Option(
        DEFAULT_LINK_SELECTOR, "--link-selector", help="CSS selector of the download link"
    ),
    timeout: float = typer.Option(DEFAULT_TIMEOUT, "--timeout", help="HTTP timeout in seconds"),
) -> None:
    """Print the download URL the catalog gives for CODE."""
    with CatalogResolver(base_url=base_url, link_selector=link_selector, timeout=timeout) as resolver:
        try:
            location = resolver.resolve(code)
        except ResolutionFailed as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=2)
    typer.echo(location.url)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
