"""Tests for the pipeline runner."""

from io import BytesIO
import json
from pathlib import Path

import httpx
import pytest
from pypdf import PdfReader, PdfWriter

from docbundle.errors import ManifestUnreadable
from docbundle.pipeline.coordinator import PipelineConfig, PipelineRunner
from docbundle.pipeline.worker import RowStatus

from conftest import FakeFetcher, FakeMerger, FakeResolver


def write_manifest(path: Path, lines: list[str]) -> Path:
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def make_config(tmp_path: Path, manifest: Path, **kwargs) -> PipelineConfig:
    return PipelineConfig(
        manifest_path=manifest,
        scratch_dir=tmp_path / ".tmp",
        output_dir=tmp_path / "dist",
        **kwargs,
    )


class TestPipelineRunner:
    """Runner behaviour with fake collaborators."""

    def test_processes_rows_in_manifest_order(self, tmp_path, resolver, fetcher, merger):
        manifest = write_manifest(tmp_path / "data.csv", [
            "Status,Doc 1,Doc 2",
            "Pendente,c1,c2",
            "Concluido,c3",
            "Pendente,c4",
        ])
        runner = PipelineRunner(
            make_config(tmp_path, manifest), resolver=resolver, fetcher=fetcher, merger=merger
        )

        outcomes = runner.run()

        assert [(o.row_index, o.status) for o in outcomes] == [
            (2, RowStatus.COMPLETED),
            (3, RowStatus.SKIPPED),
            (4, RowStatus.COMPLETED),
        ]
        assert resolver.calls == ["c1", "c2", "c4"]
        assert sorted(p.name for p in (tmp_path / "dist").iterdir()) == ["linha_2.pdf", "linha_4.pdf"]

    def test_creates_directories(self, tmp_path, resolver, fetcher, merger):
        manifest = write_manifest(tmp_path / "data.csv", ["Status"])
        PipelineRunner(
            make_config(tmp_path, manifest), resolver=resolver, fetcher=fetcher, merger=merger
        ).run()

        assert (tmp_path / ".tmp").is_dir()
        assert (tmp_path / "dist").is_dir()

    def test_merge_failure_does_not_block_next_row(self, tmp_path, resolver, fetcher):
        merger = FakeMerger(failing_outputs=["linha_2.pdf"])
        manifest = write_manifest(tmp_path / "data.csv", [
            "Status,Doc",
            "Pendente,c1",
            "Pendente,c2",
        ])
        outcomes = PipelineRunner(
            make_config(tmp_path, manifest), resolver=resolver, fetcher=fetcher, merger=merger
        ).run()

        assert [o.status for o in outcomes] == [RowStatus.PARTIALLY_FAILED, RowStatus.COMPLETED]
        assert outcomes[0].reason == "codec rejected input"

    def test_failed_code_does_not_abort_run(self, tmp_path, resolver, merger):
        fetcher = FakeFetcher(failing=["c2"])
        manifest = write_manifest(tmp_path / "data.csv", [
            "Status,Doc 1,Doc 2",
            "Pendente,c1,c2",
            "Pendente,c3",
        ])
        outcomes = PipelineRunner(
            make_config(tmp_path, manifest), resolver=resolver, fetcher=fetcher, merger=merger
        ).run()

        assert fetcher.calls == ["c1", "c2", "c3"]
        assert outcomes[0].status is RowStatus.PARTIALLY_FAILED
        assert outcomes[0].failed_codes == ("c2",)
        assert outcomes[1].status is RowStatus.COMPLETED

    def test_unexpected_row_error_is_contained(self, tmp_path, fetcher, merger):
        class BrokenResolver(FakeResolver):
            def resolve(self, code):
                if code == "boom":
                    raise RuntimeError("unexpected page shape")
                return super().resolve(code)

        manifest = write_manifest(tmp_path / "data.csv", [
            "Status,Doc",
            "Pendente,boom",
            "Pendente,c2",
        ])
        outcomes = PipelineRunner(
            make_config(tmp_path, manifest), resolver=BrokenResolver(), fetcher=fetcher, merger=merger
        ).run()

        assert outcomes[0].status is RowStatus.PARTIALLY_FAILED
        assert outcomes[0].reason == "unexpected page shape"
        assert outcomes[1].status is RowStatus.COMPLETED

    def test_unreadable_manifest_is_fatal(self, tmp_path, resolver, fetcher, merger):
        runner = PipelineRunner(
            make_config(tmp_path, tmp_path / "missing.xlsx"),
            resolver=resolver,
            fetcher=fetcher,
            merger=merger,
        )
        with pytest.raises(ManifestUnreadable):
            runner.run()
        assert resolver.calls == []

    def test_writes_jsonl_report(self, tmp_path, resolver, fetcher, merger):
        manifest = write_manifest(tmp_path / "data.csv", [
            "Status,Doc",
            "Pendente,c1",
            "Concluido,c2",
        ])
        report = tmp_path / "reports" / "run.jsonl"
        PipelineRunner(
            make_config(tmp_path, manifest, report_path=report),
            resolver=resolver,
            fetcher=fetcher,
            merger=merger,
        ).run()

        records = [json.loads(line) for line in report.read_text(encoding="utf-8").splitlines()]
        assert [(r["row"], r["status"]) for r in records] == [(2, "completed"), (3, "skipped")]


def pdf_bytes(width: float) -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=width, height=100)
    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


class TestPipelineRunnerOverHttp:
    """Runner wired to the real resolver, fetcher and PDF merger over a mock catalog."""

    WIDTHS = {"c1": 200, "c2": 300}

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/ri/handle/ri/"):
            code = path.rsplit("/", 1)[-1]
            return httpx.Response(200, text=f'<a class="dl" href="/bitstream/{code}.pdf">pdf</a>')
        if path.startswith("/bitstream/"):
            code = path.rsplit("/", 1)[-1].removesuffix(".pdf")
            if code in self.WIDTHS:
                return httpx.Response(200, content=pdf_bytes(self.WIDTHS[code]))
        return httpx.Response(404)

    def make_runner(self, tmp_path: Path, manifest: Path, **kwargs) -> PipelineRunner:
        client = httpx.Client(transport=httpx.MockTransport(self.handler), follow_redirects=True)
        config = make_config(
            tmp_path,
            manifest,
            base_url="https://catalog.test/ri/handle/ri/",
            link_selector="a.dl",
            **kwargs,
        )
        return PipelineRunner(config, client=client)

    def test_end_to_end_merge(self, tmp_path):
        manifest = write_manifest(tmp_path / "data.csv", ["Status,A,B", "Pendente,c2,c1"])

        outcomes = self.make_runner(tmp_path, manifest).run()

        assert outcomes[0].status is RowStatus.COMPLETED
        reader = PdfReader(outcomes[0].merged_artifact_path)
        assert [float(p.mediabox.width) for p in reader.pages] == [300, 200]
        assert sorted(p.name for p in (tmp_path / ".tmp").iterdir()) == ["c1.pdf", "c2.pdf"]

    def test_missing_document_strict_and_partial(self, tmp_path):
        manifest = write_manifest(tmp_path / "data.csv", ["Status,A,B", "Pendente,c1,gone"])

        strict = self.make_runner(tmp_path, manifest).run()
        assert strict[0].status is RowStatus.PARTIALLY_FAILED
        assert strict[0].failed_codes == ("gone",)
        assert strict[0].merged_artifact_path is None

        partial = self.make_runner(tmp_path, manifest, partial_merge=True).run()
        assert partial[0].status is RowStatus.PARTIALLY_FAILED
        reader = PdfReader(partial[0].merged_artifact_path)
        assert len(reader.pages) == 1
