"""
Upload Route

Creates a data room and transfers its files to storage.
"""

import structlog
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from deckflow.intake import batch_policy
from deckflow.models import AuthContext, Batch, SourceDocument
from deckflow.transfer import TransferOrchestrator

from backend.api.deps import Services, get_caller, get_services
from backend.api.schemas import DataRoomResponse

router = APIRouter()
logger = structlog.get_logger(__name__)

GENERIC_CONTENT_TYPE = "application/octet-stream"


async def read_upload(file: UploadFile) -> SourceDocument:
    """Read an uploaded file, trusting the declared type unless it is generic."""
    content = await file.read()
    declared = file.content_type if file.content_type != GENERIC_CONTENT_TYPE else None
    return SourceDocument.from_bytes(file.filename, content, declared)


@router.post("/data-rooms", response_model=DataRoomResponse)
async def create_data_room(
    company_name: str = Form(...),
    files: list[UploadFile] = File(...),
    caller: AuthContext = Depends(get_caller),
    services: Services = Depends(get_services),
) -> DataRoomResponse:
    """
    Upload files into a new data room.

    Files are validated in order; refused files are reported and the rest
    are transferred one by one. Individual transfer failures are reported
    per item and never fail the request.

    Returns:
        DataRoomResponse with intake rejections and the batch outcome
    """
    company_name = company_name.strip()
    if not company_name:
        raise HTTPException(status_code=400, detail="Company name is required")

    batch = Batch(policy=batch_policy(services.settings))
    documents = [await read_upload(f) for f in files if f.filename]
    report = batch.submit(documents)

    if not batch.items:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "No files accepted",
                "rejections": [r.model_dump(mode="json") for r in report.rejections],
            },
        )

    await services.registry.create_batch(company_name, caller, batch_id=batch.batch_id)

    orchestrator = TransferOrchestrator(
        services.sink,
        services.registry,
        concurrency=services.settings.transfer_concurrency,
    )
    outcome = await orchestrator.transfer(batch, caller)

    logger.info(
        "data_room_created",
        batch_id=batch.batch_id,
        company=company_name,
        rejected=len(report.rejections),
        completed=outcome.completed_count,
    )

    return DataRoomResponse(
        batch_id=batch.batch_id,
        company_name=company_name,
        rejections=report.rejections,
        outcome=outcome,
    )
