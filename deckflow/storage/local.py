"""Local filesystem implementations of the storage collaborators.

Uses JSON files on disk - no database required.

Layout under the data root:
    files/{caller}/{batch}/{file name}      stored bytes
    batches/{batch_id}.json                 owning data room record
    records/{batch_id}/{record_id}.json     file records
    deck_companies/{id}.json                deal hand-off
    dealflow/{id}.json
"""

import json
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Any, Optional

import aiofiles
import aiofiles.os
import structlog

from deckflow.collaborators import FileRecord
from deckflow.dealflow import build_deal_records
from deckflow.errors import RegistryRejectedError, StorageRejectedError
from deckflow.models.documents import AuthContext
from deckflow.models.queue import generate_id
from deckflow.models.snapshot import Snapshot

logger = structlog.get_logger(__name__)


async def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(json.dumps(data, indent=2, default=str))


async def read_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    async with aiofiles.open(path, "r", encoding="utf-8") as f:
        return json.loads(await f.read())


# =============================================================================
# Storage sink
# =============================================================================

class LocalStorageSink:
    """Stores file bytes under ``root``; existing objects are never overwritten."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def resolve(self, path: str) -> Path:
        relative = PurePosixPath(path)
        if relative.is_absolute() or ".." in relative.parts or not relative.parts:
            raise StorageRejectedError(f"Invalid storage path: {path}")
        return self.root.joinpath(*relative.parts)

    async def put(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiofiles.open(target, "xb") as f:
                await f.write(data)
        except FileExistsError as e:
            raise StorageRejectedError(f"The resource already exists: {path}") from e
        logger.debug("storage_put", path=path, size=len(data))

    async def get(self, path: str) -> bytes:
        async with aiofiles.open(self.resolve(path), "rb") as f:
            return await f.read()

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(self.resolve(path))


# =============================================================================
# Record registry
# =============================================================================

class JsonRecordRegistry:
    """File records and their owning data room, stored as JSON."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _batch_file(self, batch_id: str) -> Path:
        return self.root / "batches" / f"{batch_id}.json"

    def _records_dir(self, batch_id: str) -> Path:
        return self.root / "records" / batch_id

    async def create_batch(
        self,
        company_name: str,
        context: AuthContext,
        batch_id: Optional[str] = None,
    ) -> str:
        """Create the owning data room record in "uploading" status."""
        batch_id = batch_id or generate_id()
        await write_json(self._batch_file(batch_id), {
            "batch_id": batch_id,
            "company_name": company_name,
            "caller_id": context.caller_id,
            "referral_code": context.referral_code,
            "status": "uploading",
            "created_at": datetime.utcnow().isoformat(),
            "updated_at": None,
        })
        return batch_id

    async def get_batch(self, batch_id: str) -> Optional[dict]:
        return await read_json(self._batch_file(batch_id))

    async def create(self, record: FileRecord) -> str:
        if not self._batch_file(record.batch_id).exists():
            raise RegistryRejectedError(f"Unknown batch: {record.batch_id}")

        record_id = generate_id()
        data = record.model_dump(mode="json")
        data["record_id"] = record_id
        data["created_at"] = datetime.utcnow().isoformat()
        await write_json(self._records_dir(record.batch_id) / f"{record_id}.json", data)
        return record_id

    async def mark_batch(self, batch_id: str, status: str) -> None:
        batch = await self.get_batch(batch_id)
        if batch is None:
            raise RegistryRejectedError(f"Unknown batch: {batch_id}")
        batch["status"] = status
        batch["updated_at"] = datetime.utcnow().isoformat()
        await write_json(self._batch_file(batch_id), batch)

    async def list_records(self, batch_id: str) -> list[dict]:
        records_dir = self._records_dir(batch_id)
        if not records_dir.exists():
            return []
        records = []
        for path in sorted(records_dir.iterdir()):
            if path.suffix == ".json":
                records.append(await read_json(path))
        return sorted(records, key=lambda r: r["created_at"])


# =============================================================================
# Deal tracker
# =============================================================================

class JsonDealTracker:
    """Deal-tracking store writing deck companies and dealflow entries."""

    def __init__(self, root: Path):
        self.root = Path(root)

    async def create_deal(self, snapshot: Snapshot, context: AuthContext) -> str:
        company, entry = build_deal_records(snapshot, context)
        await write_json(self.root / "deck_companies" / f"{company.id}.json", company.model_dump(mode="json"))
        await write_json(self.root / "dealflow" / f"{entry.id}.json", entry.model_dump(mode="json"))
        return entry.id

    async def get_deal(self, deal_id: str) -> Optional[dict]:
        return await read_json(self.root / "dealflow" / f"{deal_id}.json")

    async def get_company(self, company_id: str) -> Optional[dict]:
        return await read_json(self.root / "deck_companies" / f"{company_id}.json")
