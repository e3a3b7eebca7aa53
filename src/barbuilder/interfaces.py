from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from .models.descriptors import SlotDescriptor


@dataclass(frozen=True)
class SpellbookEntry:
    """One learned ability as listed by the client, lowest rank first."""

    index: int
    name: str
    passive: bool = False


class ActionBarClient(Protocol):
    """The client surface the core reads slots from and places occupants through.

    Placement calls return True when the client accepted the placement. The
    client may still override a placement later; the restore verify pass
    re-reads slots to catch that.
    """

    def read_slot(self, slot: int) -> SlotDescriptor:
        """Return the live occupant of *slot* (``Empty`` when nothing is there)."""

    def clear_slot(self, slot: int) -> None:
        ...

    def place_spell(self, slot: int, book_index: int) -> bool:
        ...

    def place_item(self, slot: int, item_id: int) -> bool:
        ...

    def place_macro(self, slot: int, macro_index: int) -> bool:
        ...

    def place_companion(self, slot: int, subtype: str, index: int) -> bool:
        ...

    def place_equipment_set(self, slot: int, name: str) -> bool:
        ...

    def spellbook(self) -> Sequence[SpellbookEntry]:
        ...

    def has_item(self, item_id: int) -> bool:
        """Return True when the item is in the character's bags."""

    def find_macro(self, name: str) -> Optional[int]:
        ...

    def companions(self, subtype: str) -> Sequence["CompanionEntry"]:
        ...

    def equipment_sets(self) -> Sequence[str]:
        ...

    def capture_context(self) -> str:
        """Return "normal", "vehicle", "possess" or "bonus:<n>"."""

    def in_combat(self) -> bool:
        ...


@dataclass(frozen=True)
class CompanionEntry:
    """A companion in the client registry, 1-based ``index`` within its subtype."""

    index: int
    name: str
    icon: Optional[str] = None


class EnabledSlots(Protocol):
    def is_slot_enabled(self, slot: int, spec: Optional[int] = None) -> bool:
        ...


class TimerSource(Protocol):
    def after(self, delay: float, callback: Callable[[], None]) -> None:
        """Invoke *callback* once, *delay* seconds from now."""

    def now(self) -> float:
        ...


LevelSource = Callable[[], int]


BLOCKING_CONTEXTS = frozenset({"vehicle", "possess"})


def is_fully_blocked(client: ActionBarClient) -> bool:
    """True while the bar is replaced by a vehicle or possess bar."""
    return client.capture_context() in BLOCKING_CONTEXTS
