"""Stage 4: Score - validate the analyzer response into a Snapshot.

The analyzer response is not trusted. A missing ``company_name`` or
``deal_quality`` (or an out-of-range score) is a malformed response; the
stage never builds a partial snapshot.
"""

from typing import Any, Optional

import structlog
from pydantic import ValidationError

from deckflow.errors import MalformedResponseError
from deckflow.models.enums import PipelineStage
from deckflow.models.snapshot import (
    MAX_KEY_POINTS,
    MAX_TRACTION_TAGS,
    Ask,
    DealQuality,
    RawSnapshot,
    RawTags,
    Revenue,
    Snapshot,
    SnapshotTags,
)

logger = structlog.get_logger(__name__)


def build_snapshot(raw: Any) -> Snapshot:
    """Validate and normalize a raw analyzer response.

    Args:
        raw: Parsed analyzer response.

    Returns:
        Immutable Snapshot.

    Raises:
        MalformedResponseError: If required fields are absent or invalid.
    """
    if not isinstance(raw, dict):
        raise MalformedResponseError(
            f"Analyzer response is not an object (got {type(raw).__name__})",
            stage=PipelineStage.SCORE,
        )

    try:
        parsed = RawSnapshot.model_validate(raw)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        logger.warning("snapshot_validation_failed", fields=fields)
        raise MalformedResponseError(
            f"Invalid analyzer response: {', '.join(fields)}",
            stage=PipelineStage.SCORE,
        ) from e

    company_name = parsed.company_name.strip()
    verdict = parsed.deal_quality.verdict.strip()
    score = parsed.deal_quality.score_0_100
    if not company_name:
        raise MalformedResponseError("Analyzer response has a blank company_name", stage=PipelineStage.SCORE)
    if not 0 <= score <= 100:
        raise MalformedResponseError(
            f"deal_quality.score_0_100 out of range: {score}", stage=PipelineStage.SCORE
        )

    return Snapshot(
        company_name=company_name,
        tagline=(parsed.tagline or "").strip(),
        deal_quality=DealQuality(score=score, verdict=verdict),
        tags=_build_tags(parsed.tags),
        debrief=(parsed.debrief or "").strip(),
        key_strengths=_clean_list(parsed.key_strengths, MAX_KEY_POINTS),
        key_risks=_clean_list(parsed.key_risks, MAX_KEY_POINTS),
    )


def _build_tags(raw: Optional[RawTags]) -> SnapshotTags:
    if raw is None:
        return SnapshotTags()

    revenue = None
    if raw.revenue is not None:
        revenue = Revenue(
            amount=raw.revenue.amount,
            currency=_clean_text(raw.revenue.currency),
            metric=_clean_text(raw.revenue.metric),
            is_pre_revenue=raw.revenue.is_pre_revenue,
        )

    ask = None
    if raw.ask is not None:
        ask = Ask(
            amount=raw.ask.amount,
            currency=_clean_text(raw.ask.currency),
            round_type=_clean_text(raw.ask.round_type),
        )

    return SnapshotTags(
        stage=_clean_text(raw.stage),
        sector=_clean_text(raw.sector),
        geography=_clean_text(raw.geography),
        revenue=revenue,
        ask=ask,
        traction_tags=_clean_list(raw.traction_tags, MAX_TRACTION_TAGS),
    )


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _clean_list(values: list[str], limit: int) -> tuple[str, ...]:
    """Strip entries, drop blanks and repeats, keep order, cap length."""
    cleaned: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in cleaned:
            cleaned.append(value)
    return tuple(cleaned[:limit])
