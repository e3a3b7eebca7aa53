"""Putting stored layouts back on the live bars."""

from .engine import RestoreEngine, RestoreResult, VerifyState
from .outcome import (
    REASON_LABELS,
    FailureGroup,
    FailureReason,
    PlacementFailure,
    RestoreOutcome,
    summarize_failures,
)
from .placement import PlacementResult, PlacementStatus, SlotPlacer

__all__ = [
    "RestoreEngine",
    "RestoreResult",
    "VerifyState",
    "REASON_LABELS",
    "FailureGroup",
    "FailureReason",
    "PlacementFailure",
    "RestoreOutcome",
    "summarize_failures",
    "PlacementResult",
    "PlacementStatus",
    "SlotPlacer",
]
