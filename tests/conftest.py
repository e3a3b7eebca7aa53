import sys
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from barbuilder.app import BarBuilder  # noqa: E402
from barbuilder.config import BarBuilderSettings  # noqa: E402
from barbuilder.interfaces import CompanionEntry, SpellbookEntry  # noqa: E402
from barbuilder.models import EMPTY, Companion, EquipmentSet, Item, Macro, Spell  # noqa: E402
from barbuilder.timers import TimerQueue  # noqa: E402


class FakeActionBar:
    """In-memory client: 120 slots, a spellbook, bags and named registries.

    ``refuse_once`` makes the next placement on a slot fail; ``after_place``
    lets a test overwrite a slot right after a successful placement, the way
    the game drops new spells on the bar.
    """

    def __init__(self, level: int = 1) -> None:
        self.level = level
        self.slots: Dict[int, object] = {}
        self.context = "normal"
        self.combat = False
        self.book: List[SpellbookEntry] = []
        self.tooltip_names: Dict[str, str] = {}
        self.bags: Set[int] = set()
        self.macros: Dict[str, int] = {}
        self.companion_registry: Dict[str, List[CompanionEntry]] = {}
        self.sets: List[str] = []
        self.refuse_once: Set[int] = set()
        self.placements: List[int] = []
        self.cleared: List[int] = []

    # Test helpers

    def learn(self, name: str, passive: bool = False) -> int:
        index = len(self.book) + 1
        self.book.append(SpellbookEntry(index=index, name=name, passive=passive))
        return index

    def put(self, slot: int, desc) -> None:
        self.slots[slot] = desc

    def _refused(self, slot: int) -> bool:
        if slot in self.refuse_once:
            self.refuse_once.discard(slot)
            return True
        return False

    def _placed(self, slot: int, desc) -> bool:
        self.slots[slot] = desc
        self.placements.append(slot)
        return True

    # ActionBarClient

    def read_slot(self, slot: int):
        return self.slots.get(slot, EMPTY)

    def clear_slot(self, slot: int) -> None:
        self.slots.pop(slot, None)
        self.cleared.append(slot)

    def place_spell(self, slot: int, book_index: int) -> bool:
        if self._refused(slot):
            return False
        entry = next(e for e in self.book if e.index == book_index)
        return self._placed(slot, Spell(self.tooltip_names.get(entry.name, entry.name)))

    def place_item(self, slot: int, item_id: int) -> bool:
        if self._refused(slot):
            return False
        return self._placed(slot, Item(item_id))

    def place_macro(self, slot: int, macro_index: int) -> bool:
        if self._refused(slot):
            return False
        name = next(n for n, i in self.macros.items() if i == macro_index)
        return self._placed(slot, Macro(name))

    def place_companion(self, slot: int, subtype: str, index: int) -> bool:
        if self._refused(slot):
            return False
        entry = next(e for e in self.companion_registry[subtype] if e.index == index)
        return self._placed(slot, Companion(subtype, entry.index, entry.name))

    def place_equipment_set(self, slot: int, name: str) -> bool:
        if self._refused(slot):
            return False
        return self._placed(slot, EquipmentSet(name))

    def spellbook(self):
        return list(self.book)

    def has_item(self, item_id: int) -> bool:
        return item_id in self.bags

    def find_macro(self, name: str) -> Optional[int]:
        return self.macros.get(name)

    def companions(self, subtype: str):
        return list(self.companion_registry.get(subtype, []))

    def equipment_sets(self):
        return list(self.sets)

    def capture_context(self) -> str:
        return self.context

    def in_combat(self) -> bool:
        return self.combat


@pytest.fixture
def settings() -> BarBuilderSettings:
    # Two managed bars keep slot scans short.
    return BarBuilderSettings(default_enabled_bars=[1, 2])


@pytest.fixture
def client() -> FakeActionBar:
    return FakeActionBar(level=10)


@pytest.fixture
def timers() -> TimerQueue:
    return TimerQueue()


@pytest.fixture
def bb(tmp_path: Path, client: FakeActionBar, timers: TimerQueue, settings: BarBuilderSettings) -> BarBuilder:
    return BarBuilder(
        client,
        level_source=lambda: client.level,
        timers=timers,
        settings=settings,
        root_dir=tmp_path,
        character_id="tester",
    )
