"""
Storage Service for Analysis Runs

Handles file I/O for single-deck analysis runs.
Uses JSON files on disk - no database required.

Each run gets its own directory under {data_dir}/runs/{run_id}/ holding
metadata.json (status, stage pointer, error) and, on success, snapshot.json.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiofiles

from deckflow.models.queue import generate_id

METADATA_FILE = "metadata.json"
SNAPSHOT_FILE = "snapshot.json"


class RunStore:
    """Run metadata and results stored as JSON files under ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._locks: dict[str, asyncio.Lock] = {}

    def get_run_dir(self, run_id: str) -> Path:
        return self.root / run_id

    def get_run_file(self, run_id: str, filename: str) -> Path:
        return self.get_run_dir(run_id) / filename

    async def create_run(
        self,
        document_name: str,
        caller_id: str,
        referral_code: Optional[str] = None,
    ) -> str:
        """Create a new run in "queued" status and return its ID."""
        run_id = generate_id()
        metadata = {
            "run_id": run_id,
            "document_name": document_name,
            "caller_id": caller_id,
            "referral_code": referral_code,
            "status": "queued",
            "stage": None,
            "stage_index": None,
            "step": None,
            "failure_stage": None,
            "error_kind": None,
            "error_message": None,
            "deal_id": None,
            "started_at": datetime.utcnow().isoformat(),
            "completed_at": None,
        }
        await self.save_run_file(run_id, METADATA_FILE, metadata)
        return run_id

    async def save_run_file(self, run_id: str, filename: str, data: Any) -> None:
        run_dir = self.get_run_dir(run_id)
        run_dir.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(run_dir / filename, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data, indent=2, default=str))

    async def load_run_file(self, run_id: str, filename: str) -> Optional[dict]:
        file_path = self.get_run_file(run_id, filename)
        if not file_path.exists():
            return None

        async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
            content = await f.read()
            return json.loads(content)

    async def get_run_metadata(self, run_id: str) -> Optional[dict]:
        return await self.load_run_file(run_id, METADATA_FILE)

    async def update_run(self, run_id: str, **fields: Any) -> Optional[dict]:
        """Merge ``fields`` into the run metadata."""
        metadata = await self.get_run_metadata(run_id)
        if metadata is None:
            return None
        metadata.update(fields)
        if fields.get("status") in ("succeeded", "failed") and not metadata.get("completed_at"):
            metadata["completed_at"] = datetime.utcnow().isoformat()
        await self.save_run_file(run_id, METADATA_FILE, metadata)
        return metadata

    async def save_snapshot(self, run_id: str, snapshot: dict) -> None:
        await self.save_run_file(run_id, SNAPSHOT_FILE, snapshot)

    async def load_snapshot(self, run_id: str) -> Optional[dict]:
        return await self.load_run_file(run_id, SNAPSHOT_FILE)

    def run_lock(self, run_id: str) -> asyncio.Lock:
        """Lock serializing read-modify-write sequences on one run."""
        lock = self._locks.get(run_id)
        if lock is None:
            lock = self._locks[run_id] = asyncio.Lock()
        return lock
