"""Intake policy and validation result models."""

from typing import Union

from pydantic import BaseModel, ConfigDict, Field

from deckflow.config.settings import MEGABYTE
from deckflow.models.enums import MediaType, RejectionReason

ALL_MEDIA_TYPES = frozenset(m.value for m in MediaType)
DECK_MEDIA_TYPES = frozenset(
    m.value for m in (MediaType.PDF, MediaType.PNG, MediaType.JPEG, MediaType.WEBP)
)


class IntakePolicy(BaseModel):
    """Constraints applied by one intake call site."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Call site name, used in logs")
    allowed_media_types: frozenset[str] = Field(default=ALL_MEDIA_TYPES)
    max_file_bytes: int = Field(..., gt=0)
    max_files: int = Field(..., ge=1)

    @property
    def max_file_mb(self) -> int:
        return self.max_file_bytes // MEGABYTE


class Accepted(BaseModel):
    """Candidate passed every intake check."""

    model_config = ConfigDict(frozen=True)

    name: str
    accepted: bool = True


class Rejection(BaseModel):
    """Candidate refused at intake, with a classified reason."""

    model_config = ConfigDict(frozen=True)

    name: str
    size_bytes: int
    reason: RejectionReason
    message: str
    accepted: bool = False


ValidationResult = Union[Accepted, Rejection]
