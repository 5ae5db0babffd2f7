"""
Results Routes

Run status polling and the dealflow hand-off.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from deckflow.dealflow import save_to_dealflow
from deckflow.models import AuthContext, Snapshot

from backend.api.deps import Services, get_caller, get_services
from backend.api.schemas import DealflowResponse, RunErrorResponse, RunStatusResponse

router = APIRouter()


async def _load_owned_run(services: Services, run_id: str, caller: AuthContext) -> dict:
    metadata = await services.runs.get_run_metadata(run_id)
    if not metadata or metadata.get("caller_id") != caller.caller_id:
        raise HTTPException(status_code=404, detail=f"Run not found: {run_id}")
    return metadata


@router.get("/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(
    run_id: str,
    caller: AuthContext = Depends(get_caller),
    services: Services = Depends(get_services),
) -> RunStatusResponse:
    """
    Get the current step of a run, and its snapshot or error once finished.
    """
    metadata = await _load_owned_run(services, run_id, caller)

    snapshot = None
    if metadata["status"] == "succeeded":
        snapshot = await services.runs.load_snapshot(run_id)

    error = None
    if metadata["status"] == "failed":
        error = RunErrorResponse(
            kind=metadata.get("error_kind"),
            stage=metadata.get("failure_stage"),
            message=metadata.get("error_message"),
        )

    return RunStatusResponse(
        run_id=run_id,
        document_name=metadata["document_name"],
        status=metadata["status"],
        stage=metadata.get("stage"),
        stage_index=metadata.get("stage_index"),
        step=metadata.get("step"),
        started_at=datetime.fromisoformat(metadata["started_at"]),
        completed_at=datetime.fromisoformat(metadata["completed_at"]) if metadata.get("completed_at") else None,
        snapshot=snapshot,
        error=error,
        deal_id=metadata.get("deal_id"),
    )


@router.post("/runs/{run_id}/dealflow", response_model=DealflowResponse)
async def save_run_to_dealflow(
    run_id: str,
    caller: AuthContext = Depends(get_caller),
    services: Services = Depends(get_services),
) -> DealflowResponse:
    """
    Save a finished snapshot as a deal in "reviewing" status.

    Each run can be saved once.
    """
    async with services.runs.run_lock(run_id):
        metadata = await _load_owned_run(services, run_id, caller)

        snapshot_data = await services.runs.load_snapshot(run_id)
        if metadata["status"] != "succeeded" or snapshot_data is None:
            raise HTTPException(status_code=409, detail="Run has no snapshot to save")
        if metadata.get("deal_id"):
            raise HTTPException(status_code=409, detail="Run already saved to dealflow")

        snapshot = Snapshot.model_validate(snapshot_data)
        deal_id = await save_to_dealflow(snapshot, caller, services.tracker)
        await services.runs.update_run(run_id, deal_id=deal_id)

    return DealflowResponse(run_id=run_id, deal_id=deal_id, company_name=snapshot.company_name)
