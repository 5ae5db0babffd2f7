"""Intake validation for candidate files.

Rejections are returned, never raised, so a caller can report each refused
file individually and keep the rest of the submission.

Check order:
    1. media type whitelist   -> UNSUPPORTED_TYPE
    2. per-file size ceiling  -> TOO_LARGE
    3. batch size ceiling     -> TOO_MANY
    4. (name, size) identity  -> DUPLICATE
"""

from typing import Sequence

from deckflow.config.settings import Settings, get_settings
from deckflow.models.documents import SourceDocument
from deckflow.models.enums import RejectionReason
from deckflow.models.policy import (
    ALL_MEDIA_TYPES,
    DECK_MEDIA_TYPES,
    Accepted,
    IntakePolicy,
    Rejection,
    ValidationResult,
)


def batch_policy(settings: Settings | None = None) -> IntakePolicy:
    """Multi-file (data room) intake policy."""
    settings = settings or get_settings()
    return IntakePolicy(
        name="batch",
        allowed_media_types=ALL_MEDIA_TYPES,
        max_file_bytes=settings.batch_max_file_bytes,
        max_files=settings.batch_max_files,
    )


def single_document_policy(settings: Settings | None = None) -> IntakePolicy:
    """Single pitch deck intake policy."""
    settings = settings or get_settings()
    return IntakePolicy(
        name="single_document",
        allowed_media_types=DECK_MEDIA_TYPES,
        max_file_bytes=settings.single_max_file_bytes,
        max_files=1,
    )


def _reject(candidate: SourceDocument, reason: RejectionReason, detail: str) -> Rejection:
    return Rejection(
        name=candidate.name,
        size_bytes=candidate.size_bytes,
        reason=reason,
        message=f"{candidate.name}: {detail}",
    )


def validate(
    candidate: SourceDocument,
    existing: Sequence[SourceDocument],
    policy: IntakePolicy,
) -> ValidationResult:
    """Check one candidate against the documents already in a batch.

    Pure function of its inputs.

    Args:
        candidate: File offered for intake.
        existing: Documents already accepted into the batch, in order.
        policy: Constraints of the calling intake path.

    Returns:
        Accepted, or a Rejection carrying the first failing check.
    """
    if candidate.media_type not in policy.allowed_media_types:
        return _reject(
            candidate,
            RejectionReason.UNSUPPORTED_TYPE,
            f"Unsupported file type: {candidate.media_type or 'unknown'}",
        )

    if candidate.size_bytes > policy.max_file_bytes:
        return _reject(
            candidate,
            RejectionReason.TOO_LARGE,
            f"File too large (max {policy.max_file_mb}MB)",
        )

    if len(existing) + 1 > policy.max_files:
        return _reject(
            candidate,
            RejectionReason.TOO_MANY,
            f"Too many files (maximum {policy.max_files} allowed)",
        )

    if any(doc.identity == candidate.identity for doc in existing):
        return _reject(
            candidate,
            RejectionReason.DUPLICATE,
            "Duplicate file (same name and size already queued)",
        )

    return Accepted(name=candidate.name)


def validate_single(
    candidate: SourceDocument,
    policy: IntakePolicy | None = None,
) -> ValidationResult:
    """Validate the only file of a single-document request."""
    return validate(candidate, (), policy or single_document_policy())
