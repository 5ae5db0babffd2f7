"""Exception taxonomy for transfer and analysis.

Validation never raises: rejections are returned as values by
:mod:`deckflow.intake.validator`. Transfer errors are recovered per item by
the orchestrator. Pipeline errors are fatal to a run and surface whole.
"""

from typing import Optional

from deckflow.models.enums import PipelineErrorKind, PipelineStage, TransferErrorKind


class OperationCancelled(Exception):
    """A guarded suspension point was cancelled or ran past its deadline."""

    pass


# =============================================================================
# Transfer
# =============================================================================

class TransferError(Exception):
    """Per-item transfer failure."""

    def __init__(self, kind: TransferErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class StorageRejectedError(TransferError):
    """The storage sink refused to accept the object."""

    def __init__(self, message: str):
        super().__init__(TransferErrorKind.STORAGE_REJECTED, message)


class RegistryRejectedError(TransferError):
    """The record registry refused to create the metadata record."""

    def __init__(self, message: str):
        super().__init__(TransferErrorKind.REGISTRY_REJECTED, message)


# =============================================================================
# Analysis pipeline
# =============================================================================

class AnalyzerServiceError(Exception):
    """Raised by analyzer collaborators on a non-success response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PipelineError(Exception):
    """Fatal analysis pipeline failure.

    Attributes:
        kind: Classified failure kind.
        stage: Stage that aborted the run.
        run: Final AnalysisRun, attached by the pipeline for diagnostics.
    """

    kind: PipelineErrorKind

    def __init__(self, message: str, stage: Optional[PipelineStage] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.run = None


class ConversionFailedError(PipelineError):
    kind = PipelineErrorKind.CONVERSION_FAILED


class ExtractionFailedError(PipelineError):
    kind = PipelineErrorKind.EXTRACTION_FAILED


class AnalyzerError(PipelineError):
    kind = PipelineErrorKind.ANALYZER_ERROR


class MalformedResponseError(PipelineError):
    kind = PipelineErrorKind.MALFORMED_RESPONSE


class PipelineCancelledError(PipelineError):
    kind = PipelineErrorKind.CANCELLED
