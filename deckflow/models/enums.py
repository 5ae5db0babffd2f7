"""Enumeration types for intake, transfer and analysis models."""

from enum import Enum


class MediaType(str, Enum):
    """Media types accepted at intake."""

    PDF = "application/pdf"
    XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    XLS = "application/vnd.ms-excel"
    CSV = "text/csv"
    PNG = "image/png"
    JPEG = "image/jpeg"
    WEBP = "image/webp"

    @property
    def is_image(self) -> bool:
        return self in (MediaType.PNG, MediaType.JPEG, MediaType.WEBP)


class ItemStatus(str, Enum):
    """Lifecycle of a queued file during batch transfer."""

    PENDING = "pending"
    TRANSFERRING = "transferring"
    PERSISTED = "persisted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ItemStatus.PERSISTED, ItemStatus.FAILED)


class RejectionReason(str, Enum):
    """Why the validator refused a candidate file."""

    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    TOO_MANY = "too_many"
    DUPLICATE = "duplicate"


class TransferErrorKind(str, Enum):
    """Classification of per-item transfer failures."""

    NETWORK_FAILURE = "network_failure"
    STORAGE_REJECTED = "storage_rejected"
    REGISTRY_REJECTED = "registry_rejected"
    CANCELLED = "cancelled"


class PipelineStage(str, Enum):
    """Ordered stages of the analysis pipeline."""

    CONVERT = "convert"
    EXTRACT = "extract"
    ANALYZE = "analyze"
    SCORE = "score"

    @property
    def index(self) -> int:
        return _STAGE_ORDER.index(self)

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_ORDER = [
    PipelineStage.CONVERT,
    PipelineStage.EXTRACT,
    PipelineStage.ANALYZE,
    PipelineStage.SCORE,
]

_STAGE_LABELS = {
    PipelineStage.CONVERT: "Converting PDF...",
    PipelineStage.EXTRACT: "Extracting data...",
    PipelineStage.ANALYZE: "Analyzing investment potential...",
    PipelineStage.SCORE: "Calculating match score...",
}

STAGE_COUNT = len(_STAGE_ORDER)


class RunState(str, Enum):
    """Terminal state of an analysis run."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineErrorKind(str, Enum):
    """Classification of fatal analysis pipeline failures."""

    CONVERSION_FAILED = "conversion_failed"
    EXTRACTION_FAILED = "extraction_failed"
    ANALYZER_ERROR = "analyzer_error"
    MALFORMED_RESPONSE = "malformed_response"
    CANCELLED = "cancelled"
