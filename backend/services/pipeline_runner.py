"""
Pipeline Runner Service

Runs the single-deck analysis pipeline in the background and mirrors the
run's stage pointer into the run metadata for live polling.

Stage updates arrive synchronously from the pipeline observer; they are
queued and written in order by a single writer task.
"""

import asyncio
from typing import Optional

import structlog

from deckflow.cancellation import CancellationSignal
from deckflow.errors import PipelineError
from deckflow.models import AnalysisRun, AuthContext, RunState, SourceDocument
from deckflow.pipeline import AnalysisPipeline

from backend.services.storage import RunStore

logger = structlog.get_logger(__name__)


def _run_fields(run: AnalysisRun) -> dict:
    return {
        "status": run.terminal_state.value,
        "stage": run.current_stage.value,
        "stage_index": run.stage_index,
        "step": run.step_label,
        "failure_stage": run.failure_stage.value if run.failure_stage else None,
        "error_kind": run.error_kind.value if run.error_kind else None,
        "error_message": run.error_message,
    }


async def _write_updates(store: RunStore, run_id: str, updates: asyncio.Queue) -> None:
    while True:
        run: Optional[AnalysisRun] = await updates.get()
        if run is None:
            return
        # "succeeded" is written by run_analysis once snapshot.json exists
        if run.terminal_state == RunState.SUCCEEDED:
            continue
        await store.update_run(run_id, **_run_fields(run))


async def run_analysis(
    store: RunStore,
    pipeline: AnalysisPipeline,
    run_id: str,
    document: SourceDocument,
    context: AuthContext,
    timeout: Optional[float] = None,
) -> None:
    """
    Run the analysis pipeline for one deck.

    This function:
    1. Streams every stage change into metadata.json
    2. Saves snapshot.json on success, then marks the run succeeded
    3. Records the error kind and aborting stage on failure
    """
    updates: asyncio.Queue = asyncio.Queue()
    pipeline.observer = updates.put_nowait
    writer = asyncio.create_task(_write_updates(store, run_id, updates))

    snapshot = None
    crash = None
    try:
        snapshot = await pipeline.analyze(
            document,
            context,
            signal=CancellationSignal(timeout=timeout),
            run_id=run_id,
        )
    except PipelineError as e:
        logger.warning(
            "run_failed",
            run_id=run_id,
            stage=e.stage.value if e.stage else None,
            kind=e.kind.value,
        )
    except Exception as e:
        crash = f"{type(e).__name__}: {e}"
        logger.exception("run_crashed", run_id=run_id)
    finally:
        updates.put_nowait(None)
        await writer

    if snapshot is not None:
        try:
            await store.save_snapshot(run_id, snapshot.model_dump(mode="json"))
        except OSError as e:
            crash = f"{type(e).__name__}: {e}"
            logger.exception("snapshot_save_failed", run_id=run_id)
        else:
            await store.update_run(run_id, **_run_fields(pipeline.last_run))

    if crash:
        await store.update_run(run_id, status="failed", error_message=crash)
