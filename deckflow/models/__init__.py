"""Pydantic data models for intake, transfer and analysis."""

from .enums import (
    STAGE_COUNT,
    ItemStatus,
    MediaType,
    PipelineErrorKind,
    PipelineStage,
    RejectionReason,
    RunState,
    TransferErrorKind,
)
from .documents import AuthContext, SourceDocument, guess_media_type
from .policy import Accepted, IntakePolicy, Rejection, ValidationResult
from .queue import (
    Batch,
    BatchFrozenError,
    BatchOutcome,
    InvalidTransitionError,
    ItemOutcome,
    QueuedItem,
    SubmissionReport,
)
from .run import AnalysisRun
from .snapshot import (
    Ask,
    DealQuality,
    RawSnapshot,
    Revenue,
    Snapshot,
    SnapshotTags,
)

__all__ = [
    # Enums
    "STAGE_COUNT",
    "ItemStatus",
    "MediaType",
    "PipelineErrorKind",
    "PipelineStage",
    "RejectionReason",
    "RunState",
    "TransferErrorKind",
    # Documents
    "AuthContext",
    "SourceDocument",
    "guess_media_type",
    # Intake
    "Accepted",
    "IntakePolicy",
    "Rejection",
    "ValidationResult",
    # Queue
    "Batch",
    "BatchFrozenError",
    "BatchOutcome",
    "InvalidTransitionError",
    "ItemOutcome",
    "QueuedItem",
    "SubmissionReport",
    # Analysis
    "AnalysisRun",
    # Snapshot
    "Ask",
    "DealQuality",
    "RawSnapshot",
    "Revenue",
    "Snapshot",
    "SnapshotTags",
]
