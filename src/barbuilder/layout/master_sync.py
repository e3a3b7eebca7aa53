from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set

from ..interfaces import EnabledSlots
from ..models.descriptors import (
    ALWAYS_AVAILABLE_KINDS,
    EMPTY,
    SlotDescriptor,
    descriptors_equal,
    is_empty,
)
from ..models.snapshot import Snapshot
from .store import LayoutStore, LayoutTier

logger = logging.getLogger(__name__)


class SyncKind(str, Enum):
    CLEAR = "clear"
    MOVE = "move"
    SWAP = "swap"
    PLACE = "place"


@dataclass(frozen=True)
class SlotChange:
    slot: int
    old: Optional[SlotDescriptor]
    new: Optional[SlotDescriptor]


@dataclass(frozen=True)
class SyncOp:
    """One edit to apply to the master layout."""

    kind: SyncKind
    target: int
    descriptor: Optional[SlotDescriptor] = None
    source: Optional[int] = None


def can_sync_clear(old: Optional[SlotDescriptor]) -> bool:
    """Only always-available occupants are cleared from the master.

    A spell or item vanishing at a lower level usually means it is not learned
    or not carried yet, not that the player removed it.
    """
    return old is not None and old.kind in ALWAYS_AVAILABLE_KINDS


class MasterSync:
    """Replays bar edits made below the master level onto the master layout.

    The master is the layout stored at ``highest_seen_level``. Given two
    snapshots of the same lower level, every changed slot is classified as a
    clear, a move/swap (the occupant came from another slot of the bar) or a
    placement (it came from outside the bar) and the master is edited the same
    way. A drag between two slots shows up as two changed slots; both belong to
    one gesture and produce a single exchange.

    Ties: when several slots held the moved occupant before the edit, the first
    one in slot order is taken as the source.
    """

    def __init__(self, store: LayoutStore, enabled: EnabledSlots, total_slots: int) -> None:
        self.store = store
        self.enabled = enabled
        self.total_slots = total_slots

    def _enabled_slots(self, spec: int) -> List[int]:
        return [slot for slot in range(1, self.total_slots + 1) if self.enabled.is_slot_enabled(slot, spec)]

    # --------------- Classification ---------------

    def collect_changes(self, old: Snapshot, new: Snapshot, spec: int) -> List[SlotChange]:
        changes: List[SlotChange] = []
        for slot in self._enabled_slots(spec):
            old_desc = old.get(slot)
            new_desc = new.get(slot)
            if descriptors_equal(old_desc, new_desc):
                continue
            if is_empty(new_desc) and not can_sync_clear(old_desc):
                continue
            changes.append(SlotChange(slot=slot, old=old_desc, new=new_desc))
        return changes

    def _find_source(self, change: SlotChange, old: Snapshot, new: Snapshot, spec: int) -> Optional[int]:
        for slot in self._enabled_slots(spec):
            if slot == change.slot:
                continue
            before = old.get(slot)
            if is_empty(before) or not descriptors_equal(before, change.new):
                continue
            now = new.get(slot)
            if is_empty(now) or descriptors_equal(now, change.old):
                return slot
        return None

    def classify(self, old: Snapshot, new: Snapshot, spec: int) -> List[SyncOp]:
        changes = self.collect_changes(old, new, spec)
        consumed: Set[int] = set()
        ops: List[SyncOp] = []

        for change in changes:
            if is_empty(change.new) or change.slot in consumed:
                continue
            source = self._find_source(change, old, new, spec)
            if source is None:
                ops.append(SyncOp(SyncKind.PLACE, change.slot, descriptor=change.new))
                continue
            kind = SyncKind.MOVE if is_empty(new.get(source)) else SyncKind.SWAP
            ops.append(SyncOp(kind, change.slot, descriptor=change.new, source=source))
            consumed.add(source)

        for change in changes:
            if is_empty(change.new) and change.slot not in consumed:
                ops.append(SyncOp(SyncKind.CLEAR, change.slot))

        ops.sort(key=lambda op: op.target)
        return ops

    # --------------- Application ---------------

    @staticmethod
    def apply(master: Snapshot, ops: List[SyncOp]) -> int:
        slots: Dict[int, SlotDescriptor] = master.slots
        for op in ops:
            if op.kind is SyncKind.CLEAR:
                slots[op.target] = EMPTY
            elif op.kind in (SyncKind.MOVE, SyncKind.SWAP):
                target_desc = slots.get(op.target) or EMPTY
                source_desc = slots.get(op.source) or EMPTY
                slots[op.target] = source_desc
                slots[op.source] = target_desc
            else:
                for slot, desc in sorted(slots.items()):
                    if slot != op.target and descriptors_equal(desc, op.descriptor):
                        slots[slot] = EMPTY
                        break
                slots[op.target] = op.descriptor
        return len(ops)

    def sync(self, old: Optional[Snapshot], new: Optional[Snapshot], spec: Optional[int]) -> int:
        """Mirror the edits between *old* and *new* into the master. Returns slots synced."""
        if old is None or new is None or spec is None:
            return 0
        highest = self.store.highest_seen_level
        if highest <= 0:
            return 0
        master, tier = self.store.get(highest, spec)
        if master is None:
            return 0

        ops = self.classify(old, new, spec)
        if not ops:
            return 0

        count = self.apply(master, ops)
        for op in ops:
            logger.debug("master sync %s target=%s source=%s", op.kind.value, op.target, op.source)
        if tier is LayoutTier.DURABLE:
            self.store.flush()
        self.store.save_session(highest, master, spec)
        logger.info("%d slot(s) synced to master layout (level %d, spec %s)", count, highest, spec)
        return count
