"""Analysis pipeline orchestrator - runs one document through all stages.

Stage flow (strict order, abort on first failure):

    1. Convert  -> normalized page images    (ConversionFailedError)
    2. Extract  -> JPEG data URLs            (ExtractionFailedError)
    3. Analyze  -> raw analyzer response     (AnalyzerError)
    4. Score    -> validated Snapshot        (MalformedResponseError)

The stage pointer of the AnalysisRun advances once per successful stage.
On failure the run is frozen at the aborting stage and a single
PipelineError is raised; there is no partial snapshot.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional

import structlog
from PIL import Image

from deckflow.cancellation import CancellationSignal, guarded
from deckflow.collaborators import GenerativeAnalyzer
from deckflow.errors import (
    AnalyzerError,
    ConversionFailedError,
    ExtractionFailedError,
    OperationCancelled,
    PipelineCancelledError,
    PipelineError,
)
from deckflow.models.documents import AuthContext, SourceDocument
from deckflow.models.enums import PipelineErrorKind, PipelineStage
from deckflow.models.run import AnalysisRun
from deckflow.models.snapshot import Snapshot
from deckflow.pipeline.stages import (
    ConversionCaps,
    build_snapshot,
    conversion_caps,
    convert_document,
    encode_pages,
    request_analysis,
)

logger = structlog.get_logger(__name__)

StageObserver = Callable[[AnalysisRun], None]
Converter = Callable[[SourceDocument, ConversionCaps], list[Image.Image]]
Encoder = Callable[[list[Image.Image], ConversionCaps], list[str]]

_STAGE_FAILURE_KIND = {
    PipelineStage.CONVERT: PipelineErrorKind.CONVERSION_FAILED,
    PipelineStage.EXTRACT: PipelineErrorKind.EXTRACTION_FAILED,
    PipelineStage.ANALYZE: PipelineErrorKind.ANALYZER_ERROR,
    PipelineStage.SCORE: PipelineErrorKind.MALFORMED_RESPONSE,
}


class AnalysisPipeline:
    """Convert -> Extract -> Analyze -> Score for single documents.

    Args:
        analyzer: Generative analysis collaborator.
        caps: Conversion caps; defaults come from settings.
        converter: Stage 1 implementation.
        encoder: Stage 2 implementation.
        observer: Receives a copy of the run on start, on every stage
            advance and on the terminal transition.
    """

    def __init__(
        self,
        analyzer: GenerativeAnalyzer,
        caps: Optional[ConversionCaps] = None,
        converter: Converter = convert_document,
        encoder: Encoder = encode_pages,
        observer: Optional[StageObserver] = None,
    ):
        self.analyzer = analyzer
        self.caps = caps or conversion_caps()
        self.converter = converter
        self.encoder = encoder
        self.observer = observer
        self.last_run: Optional[AnalysisRun] = None

    async def analyze(
        self,
        document: SourceDocument,
        context: AuthContext,
        signal: Optional[CancellationSignal] = None,
        run_id: Optional[str] = None,
    ) -> Snapshot:
        """Analyze one document.

        Returns:
            The validated Snapshot.

        Raises:
            PipelineError: Subclass matching the aborting stage, with
                ``stage`` and ``run`` attached.
        """
        run = AnalysisRun(document_name=document.name)
        if run_id:
            run.run_id = run_id
        self.last_run = run
        logger.info("analysis_start", run_id=run.run_id, document=document.name, caller=context.caller_id)

        try:
            self._notify(run)

            pages = await self._run_convert(run, document, signal)
            self._advance(run, PipelineStage.EXTRACT)

            encoded = await self._run_extract(run, pages, signal)
            self._advance(run, PipelineStage.ANALYZE)

            raw = await self._run_analyze(run, encoded, document, context, signal)
            self._advance(run, PipelineStage.SCORE)

            snapshot = self._run_score(run, raw)
        except PipelineError as e:
            e.stage = run.current_stage
            run.fail(e.kind, e.message)
            e.run = run.model_copy()
            logger.error(
                "analysis_failed",
                run_id=run.run_id,
                stage=run.current_stage.value,
                kind=e.kind.value,
                error=e.message,
            )
            self._notify(run)
            raise
        except BaseException as e:
            # Observer errors and task cancellation; the observer is not called again.
            kind = (
                PipelineErrorKind.CANCELLED
                if isinstance(e, asyncio.CancelledError)
                else _STAGE_FAILURE_KIND[run.current_stage]
            )
            run.fail(kind, str(e) or type(e).__name__)
            logger.error(
                "analysis_aborted",
                run_id=run.run_id,
                stage=run.current_stage.value,
                kind=kind.value,
                error=run.error_message,
            )
            raise

        run.succeed()
        logger.info(
            "analysis_complete",
            run_id=run.run_id,
            company=snapshot.company_name,
            score=snapshot.deal_quality.score,
            duration_seconds=round(sum(run.stage_durations.values()), 2),
        )
        self._notify(run)
        return snapshot

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _run_convert(
        self,
        run: AnalysisRun,
        document: SourceDocument,
        signal: Optional[CancellationSignal],
    ) -> list[Image.Image]:
        """Stage 1: rasterize the document."""
        stage_start = datetime.now()
        try:
            pages = await guarded(asyncio.to_thread(self.converter, document, self.caps), signal)
        except OperationCancelled as e:
            raise PipelineCancelledError(str(e)) from e
        except Exception as e:
            raise ConversionFailedError(f"Could not convert {document.name}: {e}") from e

        if not pages:
            raise ConversionFailedError(f"Could not extract any pages from {document.name}")

        run.stage_durations["convert"] = (datetime.now() - stage_start).total_seconds()
        logger.info("stage_convert_complete", run_id=run.run_id, pages=len(pages))
        return pages

    async def _run_extract(
        self,
        run: AnalysisRun,
        pages: list[Image.Image],
        signal: Optional[CancellationSignal],
    ) -> list[str]:
        """Stage 2: serialize pages for transport."""
        stage_start = datetime.now()
        try:
            encoded = await guarded(asyncio.to_thread(self.encoder, pages, self.caps), signal)
        except OperationCancelled as e:
            raise PipelineCancelledError(str(e)) from e
        except Exception as e:
            raise ExtractionFailedError(f"Could not encode pages: {e}") from e

        run.stage_durations["extract"] = (datetime.now() - stage_start).total_seconds()
        logger.info(
            "stage_extract_complete",
            run_id=run.run_id,
            pages=len(encoded),
            payload_chars=sum(len(p) for p in encoded),
        )
        return encoded

    async def _run_analyze(
        self,
        run: AnalysisRun,
        encoded: list[str],
        document: SourceDocument,
        context: AuthContext,
        signal: Optional[CancellationSignal],
    ) -> dict:
        """Stage 3: call the generative analyzer."""
        stage_start = datetime.now()
        try:
            raw = await request_analysis(self.analyzer, encoded, document, context, signal)
        except OperationCancelled as e:
            raise PipelineCancelledError(str(e)) from e
        except Exception as e:
            raise AnalyzerError(str(e) or type(e).__name__) from e

        run.stage_durations["analyze"] = (datetime.now() - stage_start).total_seconds()
        logger.info("stage_analyze_complete", run_id=run.run_id)
        return raw

    def _run_score(self, run: AnalysisRun, raw: dict) -> Snapshot:
        """Stage 4: validate the response."""
        stage_start = datetime.now()
        snapshot = build_snapshot(raw)
        run.stage_durations["score"] = (datetime.now() - stage_start).total_seconds()
        logger.info("stage_score_complete", run_id=run.run_id, score=snapshot.deal_quality.score)
        return snapshot

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def _advance(self, run: AnalysisRun, stage: PipelineStage) -> None:
        run.advance(stage)
        logger.debug("analysis_stage", run_id=run.run_id, step=run.step_label)
        self._notify(run)

    def _notify(self, run: AnalysisRun) -> None:
        if self.observer is not None:
            self.observer(run.model_copy())


async def analyze_document(
    document: SourceDocument,
    context: AuthContext,
    analyzer: GenerativeAnalyzer,
    signal: Optional[CancellationSignal] = None,
    observer: Optional[StageObserver] = None,
) -> Snapshot:
    """Analyze a document with a one-off pipeline."""
    pipeline = AnalysisPipeline(analyzer, observer=observer)
    return await pipeline.analyze(document, context, signal)
