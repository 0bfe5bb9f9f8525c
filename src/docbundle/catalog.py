"""
Catalog lookup: document code -> download URL.

Each code has an item page in the institutional repository. The page carries
a single file link in a fixed position; its href is the document's download
location.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from docbundle.errors import ResolutionFailed


DEFAULT_BASE_URL = "https://repositorio.ufba.br/ri/handle/ri/"
DEFAULT_LINK_SELECTOR = (
    "body > table.centralPane > tbody > tr:nth-child(1) > td.pageContents"
    " > table:nth-child(6) > tbody > tr > td > table > tbody"
    " > tr:nth-child(2) > td:nth-child(1) > a"
)
DEFAULT_TIMEOUT = 30.0

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLocation:
    """Download location for one document code."""

    code: str
    url: str


class Resolver(Protocol):
    """Anything that maps a document code to its download location."""

    def resolve(self, code: str) -> ResolvedLocation:
        ...


def new_client(*, timeout: float = DEFAULT_TIMEOUT) -> httpx.Client:
    """HTTP client shared by catalog lookups and downloads for one run."""
    return httpx.Client(timeout=timeout, follow_redirects=True)


class CatalogResolver:
    """
    Resolve codes by scraping the catalog item page.

    A single httpx.Client is reused for every lookup. Pass ``client`` to share
    an existing one (the caller then owns closing it); otherwise the resolver
    creates and closes its own.

    Example:
        >>> with CatalogResolver() as resolver:
        ...     location = resolver.resolve("1234")
        ...     print(location.url)
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        link_selector: str = DEFAULT_LINK_SELECTOR,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self.client = client if client is not None else new_client(timeout=timeout)
        self.base_url = base_url
        self.link_selector = link_selector

    def page_url(self, code: str) -> str:
        return f"{self.base_url}{code}"

    def resolve(self, code: str) -> ResolvedLocation:
        """
        Look up the download URL for a document code.

        Parameters:
            code: Document code as it appears in the manifest

        Returns:
            ResolvedLocation with an absolute URL

        Raises:
            ResolutionFailed: On transport errors, non-2xx responses, or an
                item page without the expected link
        """
        page_url = self.page_url(code)
        try:
            resp = self.client.get(page_url)
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ResolutionFailed(code, str(e)) from e

        soup = BeautifulSoup(resp.text, "html.parser")
        element = soup.select_one(self.link_selector)
        if element is None:
            raise ResolutionFailed(code, "download link not found on item page")

        href = element.get("href")
        if not isinstance(href, str) or not href.strip():
            raise ResolutionFailed(code, "download link has no href")

        url = urljoin(str(resp.url), href.strip())
        LOGGER.debug(f"Resolved document {code}", extra={"code": code, "url": url})
        return ResolvedLocation(code=code, url=url)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> CatalogResolver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
