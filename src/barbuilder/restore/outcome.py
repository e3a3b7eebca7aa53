from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from ..models.descriptors import SlotKind


class FailureReason(str, Enum):
    NOT_FOUND = "not-found"
    NOT_IN_BAGS = "not-in-bags"
    PASSIVE = "passive"
    MISSING_DATA = "missing-data"
    UNSUPPORTED_TYPE = "unsupported-type"


REASON_LABELS: Dict[FailureReason, str] = {
    FailureReason.NOT_FOUND: "not in spellbook/bags (slot kept)",
    FailureReason.NOT_IN_BAGS: "item not in inventory (slot kept)",
    FailureReason.PASSIVE: "passive (can't place)",
    FailureReason.MISSING_DATA: "missing name or id data",
    FailureReason.UNSUPPORTED_TYPE: "unsupported action type",
}

MAX_EXAMPLES = 2


@dataclass(frozen=True)
class PlacementFailure:
    slot: int
    kind: Optional[SlotKind]
    name: str
    reason: FailureReason


@dataclass
class FailureGroup:
    reason: FailureReason
    count: int = 0
    examples: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return REASON_LABELS.get(self.reason, self.reason.value)

    def format(self) -> str:
        examples = ", ".join(self.examples)
        if self.count > len(self.examples):
            examples += ", ..."
        return f"  {self.count} {self.label}: {examples}"


def summarize_failures(failures: List[PlacementFailure]) -> List[FailureGroup]:
    """Group failures by reason, keeping the first two names of each as examples.

    Groups come out in the order their reason first appeared.
    """
    groups: "OrderedDict[FailureReason, FailureGroup]" = OrderedDict()
    for failure in failures:
        group = groups.get(failure.reason)
        if group is None:
            group = groups[failure.reason] = FailureGroup(failure.reason)
        group.count += 1
        if len(group.examples) < MAX_EXAMPLES:
            group.examples.append(failure.name or "unknown")
    return list(groups.values())


@dataclass
class RestoreOutcome:
    """Result of one placement batch."""

    restored_count: int = 0
    failures: List[PlacementFailure] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def summary_lines(self) -> List[str]:
        return [group.format() for group in summarize_failures(self.failures)]
