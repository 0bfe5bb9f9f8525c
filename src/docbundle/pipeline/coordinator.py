"""
Run coordination.

Owns the resources shared across rows (the HTTP session and the scratch and
output directories), loads the manifest once, and feeds rows to the worker
strictly in manifest order.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import httpx

from docbundle.catalog import (
    DEFAULT_BASE_URL,
    DEFAULT_LINK_SELECTOR,
    DEFAULT_TIMEOUT,
    CatalogResolver,
    Resolver,
    new_client,
)
from docbundle.manifest import DEFAULT_STATUS_COLUMN, load_work_rows
from docbundle.merge import ArtifactMerger, PdfMerger

from .fetcher import DocumentFetcher, Fetcher
from .output import DEFAULT_ARTIFACT_PREFIX, append_record
from .worker import DEFAULT_PENDING_STATUS, RowOutcome, RowProcessor, RowStatus


DEFAULT_MANIFEST_PATH = Path("excel/data.xlsx")
DEFAULT_SCRATCH_DIR = Path(".tmp")
DEFAULT_OUTPUT_DIR = Path("dist")

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Settings for one pipeline run.

    Attributes:
        manifest_path: Manifest workbook or CSV
        sheet: Worksheet name (None: first sheet)
        scratch_dir: Per-code download directory
        output_dir: Merged artifact directory
        base_url: Catalog item page prefix
        link_selector: CSS selector of the download link on an item page
        pending_status: Status text that marks a row for processing
        status_column: Column holding each row's status
        partial_merge: Merge only successfully fetched documents
        cleanup_scratch: Delete scratch files after a successful merge
        report_path: Optional JSONL file receiving one record per row
        artifact_prefix: Filename prefix for merged artifacts
        timeout: HTTP timeout in seconds
    """

    manifest_path: Path = DEFAULT_MANIFEST_PATH
    sheet: str | None = None
    scratch_dir: Path = DEFAULT_SCRATCH_DIR
    output_dir: Path = DEFAULT_OUTPUT_DIR
    base_url: str = DEFAULT_BASE_URL
    link_selector: str = DEFAULT_LINK_SELECTOR
    pending_status: str = DEFAULT_PENDING_STATUS
    status_column: str = DEFAULT_STATUS_COLUMN
    partial_merge: bool = False
    cleanup_scratch: bool = False
    report_path: Path | None = None
    artifact_prefix: str = DEFAULT_ARTIFACT_PREFIX
    timeout: float = DEFAULT_TIMEOUT


class PipelineRunner:
    """
    Process every manifest row in order.

    Collaborators default to the catalog resolver, HTTP fetcher and PDF merger;
    any of them can be injected. When the resolver or fetcher is built here,
    they share one httpx.Client that lives for the whole run.

    Example:
        >>> runner = PipelineRunner(PipelineConfig(manifest_path=Path("excel/data.xlsx")))
        >>> for outcome in runner.iter_outcomes():
        ...     print(outcome.row_index, outcome.status.value)
    """

    def __init__(
        self,
        config: PipelineConfig,
        *,
        client: httpx.Client | None = None,
        resolver: Resolver | None = None,
        fetcher: Fetcher | None = None,
        merger: ArtifactMerger | None = None,
    ) -> None:
        self.config = config
        self.client = client
        self.resolver = resolver
        self.fetcher = fetcher
        self.merger = merger if merger is not None else PdfMerger()

    def prepare_directories(self) -> None:
        self.config.scratch_dir.mkdir(parents=True, exist_ok=True)
        self.config.output_dir.mkdir(parents=True, exist_ok=True)

    def iter_outcomes(self) -> Iterator[RowOutcome]:
        """
        Run the pipeline, yielding one RowOutcome per manifest row.

        Raises:
            ManifestUnreadable: If the manifest cannot be loaded (nothing is
                processed in that case)
        """
        cfg = self.config
        self.prepare_directories()

        with contextlib.ExitStack() as stack:
            client = self.client
            if client is None and (self.resolver is None or self.fetcher is None):
                client = stack.enter_context(new_client(timeout=cfg.timeout))

            resolver = self.resolver or CatalogResolver(
                client, base_url=cfg.base_url, link_selector=cfg.link_selector
            )
            fetcher = self.fetcher or DocumentFetcher(client)

            store, rows = load_work_rows(
                cfg.manifest_path, sheet=cfg.sheet, status_column=cfg.status_column
            )
            processor = RowProcessor(
                store,
                resolver,
                fetcher,
                self.merger,
                scratch_dir=cfg.scratch_dir,
                output_dir=cfg.output_dir,
                pending_status=cfg.pending_status,
                partial_merge=cfg.partial_merge,
                cleanup_scratch=cfg.cleanup_scratch,
                artifact_prefix=cfg.artifact_prefix,
            )

            total = len(rows)
            LOGGER.info(
                f"Loaded {total} row(s) from {cfg.manifest_path}",
                extra={"manifest_path": str(cfg.manifest_path), "rows": total},
            )
            for i, row in enumerate(rows, start=1):
                LOGGER.info(
                    f"Executing {i} of {total}",
                    extra={"row": row.row_index, "position": i, "total": total},
                )
                try:
                    outcome = processor.process_row(row)
                except Exception as e:
                    LOGGER.exception(
                        f"Row {row.row_index} failed", extra={"row": row.row_index}
                    )
                    outcome = RowOutcome(
                        row_index=row.row_index,
                        status=RowStatus.PARTIALLY_FAILED,
                        reason=str(e),
                    )

                if cfg.report_path is not None:
                    append_record(cfg.report_path, outcome.to_record())
                yield outcome

    def run(self) -> list[RowOutcome]:
        return list(self.iter_outcomes())
