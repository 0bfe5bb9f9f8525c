"""
Combining a row's documents into one PDF.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, Sequence

from pypdf import PdfWriter
from pypdf.errors import PyPdfError

from docbundle.errors import MergeFailed

LOGGER = logging.getLogger(__name__)


class ArtifactMerger(Protocol):
    """Minimal interface for a merge codec."""

    def merge(self, paths: Sequence[Path], output_path: Path) -> Path:
        ...


class PdfMerger:
    """Concatenate PDFs page by page, preserving input order."""

    def merge(self, paths: Sequence[Path], output_path: Path) -> Path:
        """
        Merge ``paths`` into ``output_path``.

        Raises:
            MergeFailed: If there are no inputs, an input is missing, or pypdf
                cannot read one of them
        """
        if not paths:
            raise MergeFailed("no documents to merge")

        writer = PdfWriter()
        try:
            for path in paths:
                if not Path(path).is_file():
                    raise MergeFailed(f"missing input: {path}")
                try:
                    writer.append(str(path))
                except (PyPdfError, OSError, ValueError) as e:
                    raise MergeFailed(f"unreadable input {path}: {e}") from e

            output_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with output_path.open("wb") as f:
                    writer.write(f)
            except OSError as e:
                raise MergeFailed(f"cannot write {output_path}: {e}") from e
        finally:
            writer.close()

        LOGGER.debug(
            f"Wrote {output_path} from {len(paths)} document(s)",
            extra={"output_path": str(output_path), "inputs": len(paths)},
        )
        return output_path
