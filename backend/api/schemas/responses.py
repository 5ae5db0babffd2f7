"""
Response schemas for the API.

These define the output structure for API endpoints.
Batch and item outcomes reuse the library models directly.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from deckflow.models import BatchOutcome, Rejection


# =============================================================================
# Data Room Response
# =============================================================================

class DataRoomResponse(BaseModel):
    """Response after uploading files into a data room."""
    batch_id: str = Field(..., description="Identifier of the owning data room record")
    company_name: str
    rejections: list[Rejection] = Field(default_factory=list, description="Files refused at intake")
    outcome: BatchOutcome


# =============================================================================
# Analysis Response
# =============================================================================

class AnalyzeResponse(BaseModel):
    """Response after starting analysis."""
    run_id: str = Field(..., description="Unique identifier for this analysis run")
    document_name: str
    status: Literal["queued", "running", "succeeded", "failed"] = "queued"
    started_at: datetime = Field(default_factory=datetime.utcnow)


class RunErrorResponse(BaseModel):
    """Why a run stopped."""
    kind: Optional[str] = Field(None, description="Pipeline error kind")
    stage: Optional[str] = Field(None, description="Stage that aborted the run")
    message: Optional[str] = None


class RunStatusResponse(BaseModel):
    """Live status of an analysis run."""
    run_id: str
    document_name: str
    status: Literal["queued", "running", "succeeded", "failed"]
    stage: Optional[str] = None
    stage_index: Optional[int] = Field(None, description="0-based index of the current stage")
    step: Optional[str] = Field(None, description='Progress text, e.g. "Step 2 of 4: Extracting data..."')
    started_at: datetime
    completed_at: Optional[datetime] = None
    snapshot: Optional[dict] = None
    error: Optional[RunErrorResponse] = None
    deal_id: Optional[str] = None


# =============================================================================
# Dealflow Response
# =============================================================================

class DealflowResponse(BaseModel):
    """Response after saving a snapshot to dealflow."""
    run_id: str
    deal_id: str
    company_name: str
