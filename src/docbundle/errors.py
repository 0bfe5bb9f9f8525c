"""
Error taxonomy for the retrieval pipeline.

Only ManifestUnreadable is fatal to a run. Everything else is caught at the
row or code level, logged, and folded into the row outcome.
"""

from __future__ import annotations


class DocbundleError(Exception):
    """Base class for pipeline errors."""


class ManifestUnreadable(DocbundleError):
    """The manifest could not be opened or parsed."""


class ResolutionFailed(DocbundleError):
    """The catalog lookup for a document code did not yield a download link."""

    def __init__(self, code: str, reason: str) -> None:
        super().__init__(f"Could not resolve {code!r}: {reason}")
        self.code = code
        self.reason = reason


class FetchFailed(DocbundleError):
    """Downloading a resolved document failed."""

    def __init__(self, code: str, reason: str) -> None:
        super().__init__(f"Could not fetch {code!r}: {reason}")
        self.code = code
        self.reason = reason


class MergeFailed(DocbundleError):
    """The merge codec rejected the input set for a row."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
