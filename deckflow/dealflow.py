"""Hand-off of a finished snapshot to the deal-tracking store.

A saved snapshot becomes an investor-owned deck company plus a dealflow
entry in "reviewing" status. This is one-way: nothing in the pipeline reads
deals back.
"""

from datetime import datetime
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from deckflow.collaborators import DealTracker
from deckflow.models.documents import AuthContext
from deckflow.models.queue import generate_id
from deckflow.models.snapshot import Snapshot

logger = structlog.get_logger(__name__)

DEFAULT_STAGE = "Seed"
DEAL_SOURCE = "deck_upload"
DEAL_STATUS = "reviewing"


class DeckCompanyRecord(BaseModel):
    """Company created from an uploaded deck."""

    id: str = Field(default_factory=generate_id)
    investor_id: str
    name: str
    stage: str
    description: Optional[str] = Field(None, description="One-liner shown on dealflow cards")
    category: Optional[str] = None
    memo_json: dict = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DealflowEntry(BaseModel):
    """Reviewable deal referencing a deck company."""

    id: str = Field(default_factory=generate_id)
    investor_id: str
    deck_company_id: str
    company_id: Optional[str] = None
    source: str = DEAL_SOURCE
    status: str = DEAL_STATUS
    referral_code: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


def build_deal_records(
    snapshot: Snapshot,
    context: AuthContext,
) -> tuple[DeckCompanyRecord, DealflowEntry]:
    company = DeckCompanyRecord(
        investor_id=context.caller_id,
        name=snapshot.company_name,
        stage=snapshot.tags.stage or DEFAULT_STAGE,
        description=snapshot.tagline or snapshot.debrief or None,
        category=snapshot.tags.sector,
        memo_json=snapshot.model_dump(mode="json"),
    )
    entry = DealflowEntry(
        investor_id=context.caller_id,
        deck_company_id=company.id,
        referral_code=context.referral_code,
    )
    return company, entry


async def save_to_dealflow(snapshot: Snapshot, context: AuthContext, tracker: DealTracker) -> str:
    """Persist ``snapshot`` as a deal for the caller and return the deal id."""
    deal_id = await tracker.create_deal(snapshot, context)
    logger.info("dealflow_saved", deal_id=deal_id, company=snapshot.company_name, caller=context.caller_id)
    return deal_id
