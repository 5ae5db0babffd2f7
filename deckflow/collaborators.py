"""External collaborator contracts consumed by the core.

Implementations raise on failure; the transfer orchestrator and the
analysis pipeline classify those exceptions.
"""

from typing import Optional, Protocol

from pydantic import BaseModel, Field

from deckflow.models.documents import AuthContext
from deckflow.models.snapshot import Snapshot


class FileRecord(BaseModel):
    """Metadata persisted for every stored file."""

    batch_id: str
    file_name: str
    media_type: str
    size_bytes: int
    storage_path: str
    processing_status: str = Field(
        default="pending", description="Downstream analysis is triggered out-of-band"
    )
    caller_id: str
    referral_code: Optional[str] = None


class StorageSink(Protocol):
    """Durable binary storage addressed by path."""

    async def put(self, path: str, data: bytes) -> None: ...


class RecordRegistry(Protocol):
    """Structured records for stored files and their owning batch."""

    async def create(self, record: FileRecord) -> str: ...

    async def mark_batch(self, batch_id: str, status: str) -> None: ...


class GenerativeAnalyzer(Protocol):
    """Network service turning encoded deck pages into a raw snapshot."""

    async def analyze(
        self,
        encoded_pages: list[str],
        file_name: str,
        caller_id: str,
    ) -> dict: ...


class DealTracker(Protocol):
    """Downstream deal-tracking store (one-way hand-off)."""

    async def create_deal(self, snapshot: Snapshot, context: AuthContext) -> str: ...
