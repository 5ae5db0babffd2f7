"""Investor snapshot models.

``RawSnapshot`` mirrors the analyzer's response schema and is only used at
the Score stage boundary. ``Snapshot`` is the validated, immutable output of
a successful analysis run.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from deckflow.formatting import split_paragraphs

MAX_KEY_POINTS = 5
MAX_TRACTION_TAGS = 10


# =============================================================================
# Analyzer wire schema
# =============================================================================

class RawDealQuality(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score_0_100: float
    verdict: str


class RawRevenue(BaseModel):
    model_config = ConfigDict(extra="ignore")

    is_pre_revenue: bool = False
    amount: Optional[float] = None
    metric: Optional[str] = None
    currency: Optional[str] = None


class RawAsk(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: Optional[float] = None
    currency: Optional[str] = None
    round_type: Optional[str] = None


class RawTags(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stage: Optional[str] = None
    sector: Optional[str] = None
    geography: Optional[str] = None
    revenue: Optional[RawRevenue] = None
    ask: Optional[RawAsk] = None
    traction_tags: list[str] = Field(default_factory=list)

    @field_validator("traction_tags", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


class RawSnapshot(BaseModel):
    """Analyzer response as received. ``company_name`` and ``deal_quality``
    are required; everything else is optional in the response schema."""

    model_config = ConfigDict(extra="ignore")

    company_name: str = Field(..., min_length=1)
    deal_quality: RawDealQuality
    tagline: Optional[str] = None
    debrief: Optional[str] = None
    tags: Optional[RawTags] = None
    key_strengths: list[str] = Field(default_factory=list)
    key_risks: list[str] = Field(default_factory=list)

    @field_validator("key_strengths", "key_risks", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return [] if value is None else value


# =============================================================================
# Validated snapshot
# =============================================================================

class DealQuality(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0, le=100, description="Deal quality score 0-100")
    verdict: str = Field(..., description="One-sentence verdict")


class Revenue(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Optional[float] = None
    currency: Optional[str] = None
    metric: Optional[str] = Field(None, description="MRR, ARR, Revenue, ...")
    is_pre_revenue: bool = False


class Ask(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount: Optional[float] = None
    currency: Optional[str] = None
    round_type: Optional[str] = None


class SnapshotTags(BaseModel):
    model_config = ConfigDict(frozen=True)

    stage: Optional[str] = None
    sector: Optional[str] = None
    geography: Optional[str] = None
    revenue: Optional[Revenue] = None
    ask: Optional[Ask] = None
    traction_tags: tuple[str, ...] = Field(default=(), max_length=MAX_TRACTION_TAGS)


class Snapshot(BaseModel):
    """Structured output of a successful analysis run."""

    model_config = ConfigDict(frozen=True)

    company_name: str
    tagline: str = ""
    deal_quality: DealQuality
    tags: SnapshotTags = Field(default_factory=SnapshotTags)
    debrief: str = Field("", description="Free text, paragraphs separated by blank lines")
    key_strengths: tuple[str, ...] = Field(default=(), max_length=MAX_KEY_POINTS)
    key_risks: tuple[str, ...] = Field(default=(), max_length=MAX_KEY_POINTS)

    @property
    def paragraphs(self) -> list[str]:
        return split_paragraphs(self.debrief)
