from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple

from ..interfaces import ActionBarClient
from ..models.descriptors import (
    Companion,
    Empty,
    EquipmentSet,
    Item,
    Macro,
    SlotDescriptor,
    Spell,
)
from .outcome import FailureReason

logger = logging.getLogger(__name__)


class PlacementStatus(str, Enum):
    PLACED = "placed"
    ALREADY_PLACED = "already-placed"
    CLEARED = "cleared"
    # A spell no longer in the spellbook was removed during a forced restore.
    STALE_CLEARED = "stale-cleared"
    FAILED = "failed"


@dataclass(frozen=True)
class PlacementResult:
    status: PlacementStatus
    reason: Optional[FailureReason] = None

    @property
    def ok(self) -> bool:
        return self.status is not PlacementStatus.FAILED

    @classmethod
    def failed(cls, reason: FailureReason) -> "PlacementResult":
        return cls(PlacementStatus.FAILED, reason)


PLACED = PlacementResult(PlacementStatus.PLACED)
ALREADY_PLACED = PlacementResult(PlacementStatus.ALREADY_PLACED)
CLEARED = PlacementResult(PlacementStatus.CLEARED)
STALE_CLEARED = PlacementResult(PlacementStatus.STALE_CLEARED)


class SlotPlacer:
    """Puts one descriptor back on a slot through the client.

    Items and spells are placed over the current occupant so a slot is never
    emptied when the replacement cannot be supplied. The other kinds clear
    the slot first and then look themselves up by name.
    """

    def __init__(self, client: ActionBarClient, aliases: Optional[Mapping[str, str]] = None) -> None:
        self.client = client
        self.aliases = dict(aliases or {})

    def restore_slot(
        self,
        slot: int,
        desc: Optional[SlotDescriptor],
        force_clear: bool = False,
    ) -> PlacementResult:
        if desc is None or isinstance(desc, Empty):
            self.client.clear_slot(slot)
            return CLEARED

        if isinstance(desc, Item):
            return self.place_item(slot, desc)

        if isinstance(desc, Spell):
            result = self.place_spell(slot, desc)
            if result.reason is FailureReason.NOT_FOUND and force_clear:
                logger.debug("Clearing stale spell %r from slot %d", desc.name, slot)
                self.client.clear_slot(slot)
                return STALE_CLEARED
            return result

        if not isinstance(desc, (Macro, Companion, EquipmentSet)):
            return PlacementResult.failed(FailureReason.UNSUPPORTED_TYPE)

        self.client.clear_slot(slot)
        if isinstance(desc, Macro):
            return self.place_macro(slot, desc)
        if isinstance(desc, Companion):
            return self.place_companion(slot, desc)
        return self.place_equipment_set(slot, desc)

    # --------------- Spells ---------------

    def find_spell(self, name: str) -> Tuple[Optional[int], bool]:
        """Return (book index, passive) of the last spellbook entry named *name*.

        The spellbook lists ranks lowest first, so the last match is the
        highest learned rank.
        """
        index: Optional[int] = None
        passive = False
        for entry in self.client.spellbook():
            if entry.name == name:
                index = entry.index
                passive = entry.passive
        return index, passive

    def place_spell(self, slot: int, desc: Spell) -> PlacementResult:
        if not desc.name:
            return PlacementResult.failed(FailureReason.MISSING_DATA)

        current = self.client.read_slot(slot)
        if isinstance(current, Spell) and current.name == desc.name:
            return ALREADY_PLACED

        book_name = self.aliases.get(desc.name, desc.name)
        index, passive = self.find_spell(book_name)
        if index is None and book_name != desc.name:
            index, passive = self.find_spell(desc.name)

        if index is None:
            return PlacementResult.failed(FailureReason.NOT_FOUND)
        if passive:
            return PlacementResult.failed(FailureReason.PASSIVE)
        if self.client.place_spell(slot, index):
            return PLACED
        return PlacementResult.failed(FailureReason.NOT_FOUND)

    # --------------- Items ---------------

    def place_item(self, slot: int, desc: Item) -> PlacementResult:
        if desc.item_id is None:
            return PlacementResult.failed(FailureReason.MISSING_DATA)

        current = self.client.read_slot(slot)
        if isinstance(current, Item) and current.item_id == desc.item_id:
            return ALREADY_PLACED

        if not self.client.has_item(desc.item_id):
            return PlacementResult.failed(FailureReason.NOT_IN_BAGS)
        if self.client.place_item(slot, desc.item_id):
            return PLACED
        return PlacementResult.failed(FailureReason.NOT_FOUND)

    # --------------- Named registries ---------------

    def place_macro(self, slot: int, desc: Macro) -> PlacementResult:
        if not desc.name:
            return PlacementResult.failed(FailureReason.MISSING_DATA)
        index = self.client.find_macro(desc.name)
        if index and self.client.place_macro(slot, index):
            return PLACED
        return PlacementResult.failed(FailureReason.NOT_FOUND)

    def place_companion(self, slot: int, desc: Companion) -> PlacementResult:
        if not desc.subtype or not desc.name:
            return PlacementResult.failed(FailureReason.MISSING_DATA)
        for entry in self.client.companions(desc.subtype):
            if entry.name == desc.name:
                if self.client.place_companion(slot, desc.subtype, entry.index):
                    return PLACED
                break
        return PlacementResult.failed(FailureReason.NOT_FOUND)

    def place_equipment_set(self, slot: int, desc: EquipmentSet) -> PlacementResult:
        if not desc.name:
            return PlacementResult.failed(FailureReason.MISSING_DATA)
        if desc.name in self.client.equipment_sets() and self.client.place_equipment_set(slot, desc.name):
            return PLACED
        return PlacementResult.failed(FailureReason.NOT_FOUND)
