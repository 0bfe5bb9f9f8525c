"""
Scratch and output path resolution, plus the run report.

Scratch files are named after their document code and merged artifacts after
their manifest row, so reruns overwrite rather than duplicate.
"""

from __future__ import annotations

from pathlib import Path
import hashlib
import json
import re
from typing import Any


DEFAULT_ARTIFACT_PREFIX = "linha"
DOCUMENT_SUFFIX = ".pdf"

_UNSAFE = re.compile(r"[^\w.\-]+")
_SAFE_CODE = re.compile(r"[\w\-][\w.\-]*")


def scratch_name(code: str) -> str:
    """
    Deterministic scratch filename for a document code.

    Codes that are already safe filenames are used as-is. Anything else gets
    its unsafe characters collapsed to underscores plus a short SHA1 of the
    raw code, so distinct codes never share a scratch file.

    Example:
        >>> scratch_name("1234")
        '1234.pdf'
        >>> scratch_name("ri/1234").startswith("ri_1234-")
        True
    """
    if _SAFE_CODE.fullmatch(code):
        return f"{code}{DOCUMENT_SUFFIX}"
    digest = hashlib.sha1(code.encode("utf-8")).hexdigest()[:10]
    stem = _UNSAFE.sub("_", code).strip("._") or "document"
    return f"{stem}-{digest}{DOCUMENT_SUFFIX}"


def scratch_path(code: str, scratch_dir: Path) -> Path:
    return scratch_dir / scratch_name(code)


def artifact_path(
    row_index: int,
    output_dir: Path,
    *,
    prefix: str = DEFAULT_ARTIFACT_PREFIX,
) -> Path:
    """
    Output path for the merged artifact of a manifest row.

    Example:
        >>> artifact_path(2, Path("dist"))
        PosixPath('dist/linha_2.pdf')
    """
    return output_dir / f"{prefix}_{row_index}{DOCUMENT_SUFFIX}"


def append_record(output_path: Path, record: dict[str, Any]) -> None:
    """
    Append a record to a JSONL report file.

    Creates parent directories if they don't exist.

    Parameters:
        output_path: Path to JSONL output file
        record: Dictionary to write as JSON
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")
