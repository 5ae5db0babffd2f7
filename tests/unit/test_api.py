"""Tests for the HTTP API."""

import asyncio

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from backend.api.deps import Services, get_services
from backend.api.routes.results import save_run_to_dealflow
from backend.main import app
from backend.services.storage import RunStore
from deckflow.pipeline.stages import build_snapshot
from deckflow.storage import JsonDealTracker, JsonRecordRegistry, LocalStorageSink
from tests.conftest import FakeAnalyzer, FakeDealTracker

HEADERS = {"X-Caller-Id": "investor-1", "X-Referral-Code": "REF42"}


@pytest.fixture
def analyzer(valid_response) -> FakeAnalyzer:
    return FakeAnalyzer(valid_response)


@pytest.fixture
def services(tmp_path, settings, analyzer) -> Services:
    return Services(
        settings=settings,
        sink=LocalStorageSink(tmp_path / "files"),
        registry=JsonRecordRegistry(tmp_path),
        tracker=JsonDealTracker(tmp_path),
        analyzer=analyzer,
        runs=RunStore(tmp_path / "runs"),
    )


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestDataRooms:
    """Tests for POST /api/data-rooms."""

    def test_upload_mixed_files(self, client, tmp_path):
        files = [
            ("files", ("deck.pdf", b"%PDF-1.4 deck", "application/pdf")),
            ("files", ("model.xlsx", b"PK sheet", "application/octet-stream")),
            ("files", ("virus.exe", b"MZ", "application/x-msdownload")),
            ("files", ("deck.pdf", b"%PDF-1.4 deck", "application/pdf")),
        ]

        response = client.post("/api/data-rooms", data={"company_name": "Acme"}, files=files, headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert [r["reason"] for r in body["rejections"]] == ["unsupported_type", "duplicate"]
        outcome = body["outcome"]
        assert outcome["completed_count"] == 2
        assert outcome["owner_status"] == "processing"
        batch_id = body["batch_id"]
        assert (tmp_path / "files" / "investor-1" / batch_id / "deck.pdf").read_bytes() == b"%PDF-1.4 deck"

    def test_requires_caller(self, client):
        response = client.post(
            "/api/data-rooms",
            data={"company_name": "Acme"},
            files=[("files", ("deck.pdf", b"%PDF", "application/pdf"))],
        )
        assert response.status_code == 401

    def test_requires_company_name(self, client):
        response = client.post(
            "/api/data-rooms",
            data={"company_name": "  "},
            files=[("files", ("deck.pdf", b"%PDF", "application/pdf"))],
            headers=HEADERS,
        )
        assert response.status_code == 400

    def test_nothing_accepted(self, client):
        response = client.post(
            "/api/data-rooms",
            data={"company_name": "Acme"},
            files=[("files", ("virus.exe", b"MZ", "application/x-msdownload"))],
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["rejections"][0]["reason"] == "unsupported_type"


class TestAnalysisRuns:
    """Tests for POST /api/analyze and run polling."""

    def _start(self, client, png_bytes, name="cover.png", content_type="image/png"):
        return client.post("/api/analyze", files={"file": (name, png_bytes, content_type)}, headers=HEADERS)

    def test_successful_run(self, client, png_bytes, analyzer):
        response = self._start(client, png_bytes)
        assert response.status_code == 200
        run_id = response.json()["run_id"]

        run = client.get(f"/api/runs/{run_id}", headers=HEADERS).json()

        assert run["status"] == "succeeded"
        assert run["stage_index"] == 3
        assert run["step"] == "Step 4 of 4: Calculating match score..."
        assert run["snapshot"]["company_name"] == "Acme Robotics"
        assert run["error"] is None
        assert analyzer.calls[0]["caller_id"] == "investor-1"

    def test_failed_run_reports_stage(self, client, png_bytes, analyzer):
        analyzer.response = {"company_name": "Acme"}
        run_id = self._start(client, png_bytes).json()["run_id"]

        run = client.get(f"/api/runs/{run_id}", headers=HEADERS).json()

        assert run["status"] == "failed"
        assert run["error"]["kind"] == "malformed_response"
        assert run["error"]["stage"] == "score"
        assert run["snapshot"] is None

    def test_spreadsheet_refused(self, client):
        response = client.post(
            "/api/analyze",
            files={"file": ("model.xlsx", b"PK", "application/octet-stream")},
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["reason"] == "unsupported_type"

    def test_other_callers_cannot_see_run(self, client, png_bytes):
        run_id = self._start(client, png_bytes).json()["run_id"]
        response = client.get(f"/api/runs/{run_id}", headers={"X-Caller-Id": "someone-else"})
        assert response.status_code == 404

    def test_unknown_run(self, client):
        assert client.get("/api/runs/nope", headers=HEADERS).status_code == 404


class TestDealflowHandOff:
    def test_save_once(self, client, png_bytes, tmp_path):
        run_id = client.post(
            "/api/analyze", files={"file": ("cover.png", png_bytes, "image/png")}, headers=HEADERS
        ).json()["run_id"]

        response = client.post(f"/api/runs/{run_id}/dealflow", headers=HEADERS)

        assert response.status_code == 200
        deal_id = response.json()["deal_id"]
        assert (tmp_path / "dealflow" / f"{deal_id}.json").exists()
        assert client.get(f"/api/runs/{run_id}", headers=HEADERS).json()["deal_id"] == deal_id

        again = client.post(f"/api/runs/{run_id}/dealflow", headers=HEADERS)
        assert again.status_code == 409

    def test_failed_run_cannot_be_saved(self, client, png_bytes, analyzer):
        analyzer.error = RuntimeError("model offline")
        run_id = client.post(
            "/api/analyze", files={"file": ("cover.png", png_bytes, "image/png")}, headers=HEADERS
        ).json()["run_id"]

        response = client.post(f"/api/runs/{run_id}/dealflow", headers=HEADERS)

        assert response.status_code == 409


class SlowDealTracker(FakeDealTracker):
    async def create_deal(self, snapshot, context) -> str:
        await asyncio.sleep(0.02)
        return await super().create_deal(snapshot, context)


class TestConcurrentDealflowSaves:
    def test_overlapping_saves_create_one_deal(self, tmp_path, settings, context, valid_response):
        tracker = SlowDealTracker()
        services = Services(
            settings=settings,
            sink=LocalStorageSink(tmp_path / "files"),
            registry=JsonRecordRegistry(tmp_path),
            tracker=tracker,
            analyzer=FakeAnalyzer(valid_response),
            runs=RunStore(tmp_path / "runs"),
        )
        snapshot = build_snapshot(valid_response)

        async def run():
            run_id = await services.runs.create_run("cover.png", context.caller_id)
            await services.runs.save_snapshot(run_id, snapshot.model_dump(mode="json"))
            await services.runs.update_run(run_id, status="succeeded")
            return await asyncio.gather(
                save_run_to_dealflow(run_id, caller=context, services=services),
                save_run_to_dealflow(run_id, caller=context, services=services),
                return_exceptions=True,
            )

        first, second = asyncio.run(run())

        assert first.deal_id == "deal-1"
        assert isinstance(second, HTTPException)
        assert second.status_code == 409
        assert len(tracker.deals) == 1
