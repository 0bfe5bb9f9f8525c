"""
Single row processing worker.

Core processing for one manifest row: check status, resolve and fetch each
document in order, merge, and report a RowOutcome. Nothing here raises past
the row; every failure is folded into the outcome.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docbundle.catalog import Resolver
from docbundle.errors import MergeFailed, ResolutionFailed
from docbundle.manifest import ManifestStore, WorkRow
from docbundle.merge import ArtifactMerger

from .fetcher import FetchedDocument, Fetcher
from .output import DEFAULT_ARTIFACT_PREFIX, artifact_path, scratch_path


DEFAULT_PENDING_STATUS = "Pendente"

LOGGER = logging.getLogger(__name__)


class RowStatus(str, enum.Enum):
    """Terminal state of a row within one run."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    PARTIALLY_FAILED = "partially_failed"


@dataclass(frozen=True)
class RowOutcome:
    """
    Result of processing a single manifest row.

    Attributes:
        row_index: Manifest row number
        status: Terminal row status
        merged_artifact_path: Merged output, if one was written
        failed_codes: Codes that could not be resolved or fetched
        reason: Why the row did not complete (merge error), if any
    """

    row_index: int
    status: RowStatus
    merged_artifact_path: Path | None = None
    failed_codes: tuple[str, ...] = ()
    reason: str | None = None

    def to_record(self) -> dict[str, Any]:
        return {
            "row": self.row_index,
            "status": self.status.value,
            "merged_artifact_path": (
                str(self.merged_artifact_path) if self.merged_artifact_path else None
            ),
            "failed_codes": list(self.failed_codes),
            "reason": self.reason,
        }


class RowProcessor:
    """
    Drive one row through status check, fetch and merge.

    Parameters:
        store: Manifest store holding the status cells
        resolver: Code -> download location
        fetcher: Location -> scratch file
        merger: Ordered scratch files -> merged artifact
        scratch_dir: Directory for per-code downloads
        output_dir: Directory for merged artifacts
        pending_status: Status text that marks a row for processing
        partial_merge: Merge only the documents that were fetched instead of
            passing every intended path to the merger
        cleanup_scratch: Delete a row's scratch files after a successful merge
        artifact_prefix: Filename prefix for merged artifacts
    """

    def __init__(
        self,
        store: ManifestStore,
        resolver: Resolver,
        fetcher: Fetcher,
        merger: ArtifactMerger,
        *,
        scratch_dir: Path,
        output_dir: Path,
        pending_status: str = DEFAULT_PENDING_STATUS,
        partial_merge: bool = False,
        cleanup_scratch: bool = False,
        artifact_prefix: str = DEFAULT_ARTIFACT_PREFIX,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.fetcher = fetcher
        self.merger = merger
        self.scratch_dir = scratch_dir
        self.output_dir = output_dir
        self.pending_status = pending_status
        self.partial_merge = partial_merge
        self.cleanup_scratch = cleanup_scratch
        self.artifact_prefix = artifact_prefix

    def is_pending(self, row: WorkRow) -> bool:
        return self.store.get_cell(str(row.status_ref)) == self.pending_status

    def fetch_document(self, code: str) -> FetchedDocument:
        try:
            location = self.resolver.resolve(code)
        except ResolutionFailed as e:
            LOGGER.warning(
                f"Could not resolve document {code}",
                extra={"code": code, "error": e.reason},
            )
            return FetchedDocument(
                code=code,
                scratch_path=scratch_path(code, self.scratch_dir),
                succeeded=False,
            )

        LOGGER.info(f"Downloading document {code}", extra={"code": code, "url": location.url})
        return self.fetcher.fetch(location, self.scratch_dir)

    def merge_inputs(self, documents: list[FetchedDocument]) -> list[Path]:
        """Scratch paths handed to the merger, always in code order."""
        if self.partial_merge:
            return [doc.scratch_path for doc in documents if doc.succeeded]
        return [doc.scratch_path for doc in documents]

    def process_row(self, row: WorkRow) -> RowOutcome:
        """
        Process one manifest row.

        The status cell is read once, before any fetch. A non-pending row is
        returned as skipped without touching the scratch or output directory.
        """
        if not self.is_pending(row):
            LOGGER.debug(
                f"Skipping row {row.row_index}: not pending", extra={"row": row.row_index}
            )
            return RowOutcome(row_index=row.row_index, status=RowStatus.SKIPPED)

        documents = [self.fetch_document(code) for code in row.codes]
        failed = tuple(doc.code for doc in documents if not doc.succeeded)

        output_path = artifact_path(row.row_index, self.output_dir, prefix=self.artifact_prefix)
        LOGGER.info(
            f"Merging documents of row {row.row_index}",
            extra={"row": row.row_index, "documents": len(documents), "failed": len(failed)},
        )
        try:
            merged = self.merger.merge(self.merge_inputs(documents), output_path)
        except MergeFailed as e:
            LOGGER.warning(
                f"Skipping merge of row {row.row_index}: {e.reason}",
                extra={"row": row.row_index, "error": e.reason},
            )
            return RowOutcome(
                row_index=row.row_index,
                status=RowStatus.PARTIALLY_FAILED,
                failed_codes=failed,
                reason=e.reason,
            )

        if self.cleanup_scratch:
            for doc in documents:
                doc.scratch_path.unlink(missing_ok=True)

        return RowOutcome(
            row_index=row.row_index,
            status=RowStatus.PARTIALLY_FAILED if failed else RowStatus.COMPLETED,
            merged_artifact_path=merged,
            failed_codes=failed,
        )
