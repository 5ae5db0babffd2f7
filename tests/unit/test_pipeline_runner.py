"""Unit tests for the background run bookkeeping."""

import asyncio

from backend.services.pipeline_runner import run_analysis
from backend.services.storage import RunStore
from deckflow.models import SourceDocument
from deckflow.pipeline import AnalysisPipeline, ConversionCaps
from tests.conftest import FakeAnalyzer


class SlowSnapshotStore(RunStore):
    """Records the run status seen while the snapshot is being written."""

    def __init__(self, root):
        super().__init__(root)
        self.status_at_save = None

    async def save_snapshot(self, run_id: str, snapshot: dict) -> None:
        await asyncio.sleep(0.05)
        self.status_at_save = (await self.get_run_metadata(run_id))["status"]
        await super().save_snapshot(run_id, snapshot)


class FailingSnapshotStore(RunStore):
    async def save_snapshot(self, run_id: str, snapshot: dict) -> None:
        raise OSError("disk full")


def _run(store, analyzer, document, context):
    async def run():
        run_id = await store.create_run(document.name, context.caller_id, context.referral_code)
        pipeline = AnalysisPipeline(analyzer, caps=ConversionCaps())
        await run_analysis(store, pipeline, run_id, document, context, timeout=5)
        return run_id, await store.get_run_metadata(run_id), await store.load_snapshot(run_id)

    return asyncio.run(run())


class TestRunAnalysis:
    def test_succeeded_written_after_snapshot(self, tmp_path, context, png_bytes, valid_response):
        store = SlowSnapshotStore(tmp_path / "runs")
        document = SourceDocument.from_bytes("cover.png", png_bytes)

        _, metadata, snapshot = _run(store, FakeAnalyzer(valid_response), document, context)

        assert store.status_at_save == "running"
        assert metadata["status"] == "succeeded"
        assert metadata["stage"] == "score"
        assert metadata["completed_at"] is not None
        assert snapshot["company_name"] == "Acme Robotics"

    def test_snapshot_write_failure_fails_run(self, tmp_path, context, png_bytes, valid_response):
        store = FailingSnapshotStore(tmp_path / "runs")
        document = SourceDocument.from_bytes("cover.png", png_bytes)

        _, metadata, snapshot = _run(store, FakeAnalyzer(valid_response), document, context)

        assert metadata["status"] == "failed"
        assert "disk full" in metadata["error_message"]
        assert snapshot is None

    def test_pipeline_failure_recorded(self, tmp_path, context, png_bytes):
        store = RunStore(tmp_path / "runs")
        document = SourceDocument.from_bytes("cover.png", png_bytes)

        _, metadata, snapshot = _run(store, FakeAnalyzer(error=RuntimeError("model offline")), document, context)

        assert metadata["status"] == "failed"
        assert metadata["failure_stage"] == "analyze"
        assert metadata["error_kind"] == "analyzer_error"
        assert snapshot is None
