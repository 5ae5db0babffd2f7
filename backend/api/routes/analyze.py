"""
Analyze Route

Starts single-deck analysis in the background.
"""

from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile

from deckflow.intake import single_document_policy, validate_single
from deckflow.models import AuthContext, Rejection
from deckflow.pipeline import AnalysisPipeline

from backend.api.deps import Services, get_caller, get_services
from backend.api.routes.upload import read_upload
from backend.api.schemas import AnalyzeResponse
from backend.services import pipeline_runner

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_deck(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    caller: AuthContext = Depends(get_caller),
    services: Services = Depends(get_services),
) -> AnalyzeResponse:
    """
    Start analysis of a pitch deck.

    The analysis runs in the background. Use the returned run_id
    to poll the current step and retrieve the snapshot.
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    document = await read_upload(file)
    result = validate_single(document, single_document_policy(services.settings))
    if isinstance(result, Rejection):
        raise HTTPException(
            status_code=400,
            detail={"message": result.message, "reason": result.reason.value},
        )

    run_id = await services.runs.create_run(document.name, caller.caller_id, caller.referral_code)

    pipeline = AnalysisPipeline(services.analyzer, caps=services.caps)
    background_tasks.add_task(
        pipeline_runner.run_analysis,
        services.runs,
        pipeline,
        run_id,
        document,
        caller,
        services.settings.analysis_timeout_seconds,
    )

    return AnalyzeResponse(
        run_id=run_id,
        document_name=document.name,
        status="queued",
        started_at=datetime.utcnow(),
    )
