"""Workflow engine: graph model, repair passes, suggestions and versioning."""

from .graph import StatusDraft, TransitionDraft, key_of, normalize_key
from .normalizer import (
    GraphPlan,
    ValidationResult,
    normalize_statuses,
    prepare_graph,
    sanitize_transitions,
    validate,
)
from .suggestions import FieldSummary, Suggestion, suggest

__all__ = [
    "FieldSummary",
    "GraphPlan",
    "StatusDraft",
    "Suggestion",
    "TransitionDraft",
    "ValidationResult",
    "key_of",
    "normalize_key",
    "normalize_statuses",
    "prepare_graph",
    "sanitize_transitions",
    "suggest",
    "validate",
]
