"""Pytest configuration and fixtures."""

import asyncio
import io
from typing import Optional

import pytest
from PIL import Image

from deckflow.collaborators import FileRecord
from deckflow.config.settings import Settings
from deckflow.models import AuthContext, SourceDocument


# =============================================================================
# Fake collaborators
# =============================================================================

class FakeSink:
    """In-memory storage sink; fails for configured file names."""

    def __init__(self, fail_on=(), error: Optional[Exception] = None, delay: float = 0.0):
        self.fail_on = set(fail_on)
        self.error = error
        self.delay = delay
        self.stored: dict[str, bytes] = {}
        self.calls: list[str] = []

    async def put(self, path: str, data: bytes) -> None:
        self.calls.append(path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if path.rsplit("/", 1)[-1] in self.fail_on:
            raise self.error or ConnectionError("connection reset by peer")
        self.stored[path] = data


class FakeRegistry:
    """In-memory record registry."""

    def __init__(self, fail_on=(), mark_error: Optional[Exception] = None):
        self.fail_on = set(fail_on)
        self.mark_error = mark_error
        self.records: list[FileRecord] = []
        self.marked: list[tuple[str, str]] = []

    async def create(self, record: FileRecord) -> str:
        if record.file_name in self.fail_on:
            raise PermissionError("row violates policy")
        self.records.append(record)
        return f"rec-{len(self.records)}"

    async def mark_batch(self, batch_id: str, status: str) -> None:
        if self.mark_error is not None:
            raise self.mark_error
        self.marked.append((batch_id, status))


class FakeAnalyzer:
    """Returns a canned response, or raises ``error``."""

    def __init__(self, response=None, error: Optional[Exception] = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def analyze(self, encoded_pages: list[str], file_name: str, caller_id: str) -> dict:
        self.calls.append({"pages": encoded_pages, "file_name": file_name, "caller_id": caller_id})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class FakeDealTracker:
    def __init__(self):
        self.deals: list[tuple] = []

    async def create_deal(self, snapshot, context) -> str:
        self.deals.append((snapshot, context))
        return f"deal-{len(self.deals)}"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def context() -> AuthContext:
    return AuthContext(caller_id="investor-1", referral_code="REF42")


@pytest.fixture
def make_document():
    """Factory for in-memory documents of a given size."""

    def _make(name: str, size: int = 1024, media_type: Optional[str] = None) -> SourceDocument:
        return SourceDocument.from_bytes(name, b"x" * size, media_type)

    return _make


def _image_bytes(fmt: str, size=(40, 30), color=(200, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def large_png_bytes() -> bytes:
    return _image_bytes("PNG", size=(3000, 1500))


@pytest.fixture
def pdf_bytes() -> bytes:
    """An 8-page PDF rendered by Pillow."""
    pages = [Image.new("RGB", (200, 150), (i * 30, 80, 120)) for i in range(8)]
    buffer = io.BytesIO()
    pages[0].save(buffer, format="PDF", save_all=True, append_images=pages[1:])
    return buffer.getvalue()


@pytest.fixture
def valid_response() -> dict:
    """Analyzer response with every field populated."""
    return {
        "company_name": "  Acme Robotics ",
        "tagline": "Warehouse picking robots for mid-size 3PLs",
        "deal_quality": {"score_0_100": 82, "verdict": "Strong team, early but real traction."},
        "debrief": "Acme sells picking robots.\n\nThey have 12 paying customers.",
        "tags": {
            "stage": "Seed",
            "sector": "Robotics",
            "geography": "US",
            "revenue": {"is_pre_revenue": True, "amount": None, "metric": None, "currency": None},
            "ask": {"amount": 2000000, "currency": "$", "round_type": "Seed"},
            "traction_tags": ["12 customers", "12 customers", "  ", "3 pilots"],
        },
        "key_strengths": ["Team", "Customers", "Margins", "Patents", "Speed", "Hiring"],
        "key_risks": ["Hardware capex"],
    }
