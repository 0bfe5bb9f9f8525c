"""
Downloading resolved documents into the scratch directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import httpx

from docbundle.catalog import ResolvedLocation
from docbundle.errors import FetchFailed

from .output import scratch_path

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedDocument:
    """
    Result of fetching a single document.

    Attributes:
        code: Document code
        scratch_path: Where the document is (or would have been) stored
        succeeded: Whether the download completed
    """

    code: str
    scratch_path: Path
    succeeded: bool


class Fetcher(Protocol):
    def fetch(self, location: ResolvedLocation, dest_dir: Path) -> FetchedDocument:
        ...


class DocumentFetcher:
    """Stream documents to disk over a shared httpx.Client."""

    def __init__(self, client: httpx.Client) -> None:
        self.client = client

    def _download(self, location: ResolvedLocation, dest: Path) -> None:
        try:
            with self.client.stream("GET", location.url) as resp:
                resp.raise_for_status()
                with dest.open("wb") as f:
                    for chunk in resp.iter_bytes():
                        f.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
            raise FetchFailed(location.code, str(e)) from e

    def fetch(self, location: ResolvedLocation, dest_dir: Path) -> FetchedDocument:
        """
        Download ``location`` into ``dest_dir``.

        Never raises. On failure the error is logged, any partial or stale
        file for the code is removed, and ``succeeded`` is False.
        """
        dest = scratch_path(location.code, dest_dir)
        try:
            self._download(location, dest)
        except FetchFailed as e:
            LOGGER.warning(
                f"Could not download document {location.code}",
                extra={"code": location.code, "url": location.url, "error": e.reason},
            )
            dest.unlink(missing_ok=True)
            return FetchedDocument(code=location.code, scratch_path=dest, succeeded=False)

        return FetchedDocument(code=location.code, scratch_path=dest, succeeded=True)
