"""Shared fakes for pipeline tests."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pytest

from docbundle.catalog import ResolvedLocation
from docbundle.errors import MergeFailed, ResolutionFailed
from docbundle.pipeline.fetcher import FetchedDocument
from docbundle.pipeline.output import scratch_path


FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeResolver:
    """Resolves every code to a fake URL unless listed in ``failing``."""

    def __init__(self, failing: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: list[str] = []

    def resolve(self, code: str) -> ResolvedLocation:
        self.calls.append(code)
        if code in self.failing:
            raise ResolutionFailed(code, "no link")
        return ResolvedLocation(code=code, url=f"https://catalog.test/files/{code}.pdf")


class FakeFetcher:
    """Writes ``content-of-<code>`` to the scratch dir unless the code is in ``failing``."""

    def __init__(self, failing: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: list[str] = []

    def fetch(self, location: ResolvedLocation, dest_dir: Path) -> FetchedDocument:
        self.calls.append(location.code)
        dest = scratch_path(location.code, dest_dir)
        if location.code in self.failing:
            dest.unlink(missing_ok=True)
            return FetchedDocument(code=location.code, scratch_path=dest, succeeded=False)
        dest.write_bytes(f"content-of-{location.code}".encode("utf-8"))
        return FetchedDocument(code=location.code, scratch_path=dest, succeeded=True)


class FakeMerger:
    """Concatenates input bytes; rejects missing inputs like a real codec."""

    def __init__(self, failing_outputs: Sequence[str] = ()) -> None:
        self.failing_outputs = set(failing_outputs)
        self.calls: list[tuple[list[Path], Path]] = []

    def merge(self, paths: Sequence[Path], output_path: Path) -> Path:
        self.calls.append((list(paths), output_path))
        if output_path.name in self.failing_outputs:
            raise MergeFailed("codec rejected input")
        if not paths:
            raise MergeFailed("no documents to merge")
        data = b""
        for path in paths:
            if not path.exists():
                raise MergeFailed(f"missing input: {path}")
            data += path.read_bytes() + b"\n"
        output_path.write_bytes(data)
        return output_path


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def merger() -> FakeMerger:
    return FakeMerger()
