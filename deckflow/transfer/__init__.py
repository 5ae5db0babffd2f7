"""Batch transfer to storage and record registry."""

from .orchestrator import (
    TransferOrchestrator,
    build_storage_path,
    progress_percent,
    transfer_batch,
)

__all__ = [
    "TransferOrchestrator",
    "build_storage_path",
    "progress_percent",
    "transfer_batch",
]
