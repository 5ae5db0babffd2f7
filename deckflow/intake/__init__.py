"""Intake validation."""

from .validator import (
    Accepted,
    IntakePolicy,
    Rejection,
    ValidationResult,
    batch_policy,
    single_document_policy,
    validate,
    validate_single,
)

__all__ = [
    "Accepted",
    "IntakePolicy",
    "Rejection",
    "ValidationResult",
    "batch_policy",
    "single_document_policy",
    "validate",
    "validate_single",
]
